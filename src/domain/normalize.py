"""
Domain canonicalization.

Turns a URL or bare host string into the comparable key used to group
backlinks by referring domain and to deduplicate the resource library.
"""

from urllib.parse import urlparse


def normalize_domain(value: str) -> str:
    """
    Canonicalize a URL or host string to a domain key.

    URLs with a scheme are parsed and reduced to their host; anything else is
    cut at the first '/'. The result is lower-cased with leading 'www.'
    labels removed. Never raises: if parsing fails, the lower-cased, trimmed
    input is returned instead.

    Args:
        value: URL (e.g. 'https://Blog.Example.com/post') or host

    Returns:
        Canonical domain (e.g. 'blog.example.com'), possibly empty

    Example:
        >>> normalize_domain('http://www.Example.com/a/b')
        'example.com'
    """
    if value is None:
        return ''

    raw = str(value)

    try:
        if '://' in raw:
            host = urlparse(raw.strip()).hostname
            if host is None:
                raise ValueError(f"No host in {raw!r}")
        else:
            host = raw.split('/')[0]

        host = host.strip().lower()
        while host.startswith('www.'):
            host = host[4:].strip()
        return host

    except ValueError:
        return raw.lower().strip()
