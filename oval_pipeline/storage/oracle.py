"""
Oracle Linux OVAL store.

Oracle publishes a single ELSA file covering every release; the feed
layer splits it per OS version before it reaches this store.
"""
from . import families
from .oval_store import OvalStore


class OracleStore(OvalStore):
    """Stores and queries Oracle Linux OVAL definitions."""

    family = families.ORACLE
