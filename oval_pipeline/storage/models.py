"""
Plain value structures for stored OVAL documents.

A Root is one ingested snapshot for a (family, OS version) pair and owns a
forest of Definitions. Every nested record is exclusively owned by its
parent; the storage layer never updates a Definition in place, it replaces
the whole Root.

The `id` field on each record is the database row id. It is None for
records built by the parser and set when records are read back.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

_MAJOR_VERSION_SEPARATORS = re.compile(r"[.\-(\s]")


def major_version(os_version: str) -> str:
    """
    Extract the major-version component of an OS version string.

    "13.2" -> "13", "7.4" -> "7", "9 (stretch)" -> "9", "12-sp1" -> "12"
    """
    return _MAJOR_VERSION_SEPARATORS.split(os_version.strip(), maxsplit=1)[0]


@dataclass
class FetchMeta:
    """Source snapshot bookkeeping: which file, generated when."""
    file_name: str
    timestamp: datetime
    id: Optional[int] = None


@dataclass
class Cve:
    cve_id: str
    cvss2: str = ""
    cvss3: str = ""
    cwe: str = ""
    href: str = ""
    public: str = ""
    id: Optional[int] = None


@dataclass
class Bugzilla:
    bugzilla_id: str
    url: str = ""
    title: str = ""
    id: Optional[int] = None


@dataclass
class Cpe:
    cpe: str
    id: Optional[int] = None


@dataclass
class Advisory:
    advisory_id: str = ""
    severity: str = ""
    issued: str = ""
    updated: str = ""
    cves: List[Cve] = field(default_factory=list)
    bugzillas: List[Bugzilla] = field(default_factory=list)
    affected_cpe_list: List[Cpe] = field(default_factory=list)
    id: Optional[int] = None


@dataclass
class Package:
    """An affected package and its version constraint."""
    name: str
    version: str = ""
    not_fixed_yet: bool = False
    id: Optional[int] = None


@dataclass
class Reference:
    source: str = ""
    ref_id: str = ""
    ref_url: str = ""
    id: Optional[int] = None


@dataclass
class Debian:
    """Debian-only metadata; cve_id is denormalized for direct lookup."""
    cve_id: str = ""
    more_info: str = ""
    dsa: str = ""
    date: str = ""
    id: Optional[int] = None


@dataclass
class Definition:
    definition_id: str
    title: str = ""
    description: str = ""
    severity: str = ""
    advisory: Optional[Advisory] = None
    affected_packs: List[Package] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    debian: Optional[Debian] = None
    id: Optional[int] = None
    root_id: Optional[int] = None

    @property
    def cve_ids(self) -> List[str]:
        """CVE identifiers referenced by this definition."""
        ids = []
        if self.advisory:
            ids.extend(c.cve_id for c in self.advisory.cves)
        if self.debian and self.debian.cve_id and self.debian.cve_id not in ids:
            ids.append(self.debian.cve_id)
        return ids


@dataclass
class Root:
    family: str
    os_version: str
    definitions: List[Definition] = field(default_factory=list)
    id: Optional[int] = None
