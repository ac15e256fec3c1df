"""
RedHat OVAL store.

RedHat advisories carry Bugzilla entries and an affected CPE list in
addition to CVEs; both are hydrated on lookup.
"""
from . import families
from .oval_store import OvalStore


class RedHatStore(OvalStore):
    """Stores and queries RedHat Enterprise Linux OVAL definitions."""

    family = families.REDHAT
    auxiliary_tables = ("bugzillas", "cpes")
