"""
SUSE OVAL stores.

openSUSE, openSUSE Leap, SLES, SLED and SUSE OpenStack Cloud share one
store implementation; each variant is its own family discriminator, so
their Roots never mix.
"""
from typing import Optional

from . import families
from .database import Database
from .exceptions import UnknownFamilyError
from .oval_store import OvalStore


class SuseStore(OvalStore):
    """Stores and queries OVAL definitions for one SUSE variant."""

    family = families.OPENSUSE

    def __init__(self, database: Database, family: Optional[str] = None):
        if family is not None and family not in families.SUSE_FAMILIES:
            raise UnknownFamilyError(family)
        super().__init__(database, family)
