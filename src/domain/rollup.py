"""
Referring-domain rollup and spam/risk classification.
"""

from typing import Dict, Iterable, List, Set

from domain.schemas import BacklinkRecord, DomainSummary, RiskLevel

# Link-farm signal: more outbound links than this on the referring page
MAX_EXTERNAL_LINKS = 400

# Low-trust signal: authority below this value
MIN_AUTHORITY_SCORE = 5


def classify_risk(external_link_count: float, authority_score: float) -> RiskLevel:
    """
    Classify a referring domain as healthy or at-risk.

    Advisory only; callers decide whether to hide at-risk domains.

    Example:
        >>> classify_risk(400, 5)
        <RiskLevel.HEALTHY: 'healthy'>
        >>> classify_risk(401, 50)
        <RiskLevel.AT_RISK: 'at_risk'>
    """
    if external_link_count > MAX_EXTERNAL_LINKS or authority_score < MIN_AUTHORITY_SCORE:
        return RiskLevel.AT_RISK
    return RiskLevel.HEALTHY


def rollup_domains(records: Iterable[BacklinkRecord], catalog_domains: Set[str]) -> List[DomainSummary]:
    """
    Group records by referring domain and summarize each group.

    Representative fields (authority score, traffic, external links) come
    from the first record of the domain in input order; authority is a
    domain-level property, so it is not aggregated.

    Args:
        records: Backlink records to summarize
        catalog_domains: Domains currently present in the library

    Returns:
        One DomainSummary per domain, in order of first appearance
    """
    groups: Dict[str, List[BacklinkRecord]] = {}
    for record in records:
        groups.setdefault(record.referring_domain, []).append(record)

    summaries = []
    for domain, links in groups.items():
        first = links[0]
        summaries.append(DomainSummary(
            domain=domain,
            authority_score=first.domain_authority_score,
            traffic=first.domain_traffic,
            link_count=len(links),
            dofollow_count=sum(1 for link in links if not link.is_nofollow),
            external_link_count=first.external_link_count,
            in_catalog=domain in catalog_domains,
            risk=classify_risk(first.external_link_count, first.domain_authority_score),
            links=links,
        ))

    return summaries
