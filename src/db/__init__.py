"""
Database package for backlink intelligence.
"""

from .models import Base, Site, Snapshot, SnapshotStatus, Backlink, LibraryDomain, ImportLog, PricingType, LinkStatus, DomainType
from .database import Database

__all__ = ['Base', 'Site', 'Snapshot', 'SnapshotStatus', 'Backlink', 'LibraryDomain', 'ImportLog', 'PricingType', 'LinkStatus', 'DomainType', 'Database']
