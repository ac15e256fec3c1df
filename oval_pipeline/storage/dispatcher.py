"""
Routes lookups to the family store that owns the requested family.

The registry maps each family discriminator to a store factory; a family
missing from it is an error, never a fallback.
"""
import logging
from functools import partial
from typing import Callable, Dict, List

from . import families
from .database import Database
from .debian import DebianStore
from .exceptions import QueryError, UnknownFamilyError
from .models import Definition
from .oracle import OracleStore
from .oval_store import OvalStore
from .redhat import RedHatStore
from .suse import SuseStore

logger = logging.getLogger(__name__)

MODE_PACKAGE = "package"
MODE_CVE = "cve"

STORE_REGISTRY: Dict[str, Callable[[Database], OvalStore]] = {
    families.REDHAT: RedHatStore,
    families.DEBIAN: DebianStore,
    families.ORACLE: OracleStore,
}
for _suse_family in families.SUSE_FAMILIES:
    STORE_REGISTRY[_suse_family] = partial(SuseStore, family=_suse_family)


def new_store(database: Database, family: str) -> OvalStore:
    """Build the store registered for `family`."""
    factory = STORE_REGISTRY.get(family)
    if factory is None:
        raise UnknownFamilyError(family)
    return factory(database)


def dispatch(
    database: Database,
    family: str,
    os_release: str,
    key: str,
    mode: str,
    conn=None,
) -> List[Definition]:
    """
    Look up definitions for a family and OS major release.

    Args:
        database: Shared database handle
        family: Family discriminator, e.g. "redhat"
        os_release: OS major version, e.g. "7"
        key: Package name or CVE id, depending on mode
        mode: "package" or "cve"
        conn: Optional alternate connection for the read

    Raises:
        UnknownFamilyError: If no store is registered for the family
        QueryError: If the mode is unknown or the read fails
    """
    store = new_store(database, family)
    logger.debug(f"Dispatching {mode} lookup {key!r} to {type(store).__name__} ({family} {os_release})")

    if mode == MODE_PACKAGE:
        return store.get_by_pack_name(os_release, key, conn=conn)
    if mode == MODE_CVE:
        return store.get_by_cve_id(os_release, key, conn=conn)
    raise QueryError(f"Unknown lookup mode: {mode}")


def get_by_pack_name(database: Database, family: str, os_release: str, pack_name: str, conn=None) -> List[Definition]:
    """Definitions affecting `pack_name` on a family's OS major release."""
    return dispatch(database, family, os_release, pack_name, MODE_PACKAGE, conn=conn)


def get_by_cve_id(database: Database, family: str, os_release: str, cve_id: str, conn=None) -> List[Definition]:
    """Definitions referencing `cve_id` on a family's OS major release."""
    return dispatch(database, family, os_release, cve_id, MODE_CVE, conn=conn)
