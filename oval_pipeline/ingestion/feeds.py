"""
Per-family OVAL feed locations and the fetch step that turns one feed
file into a Root document plus its FetchMeta.

URL templates may be overridden in config.yaml under feeds.<family>.
Placeholders: {family}, {version}, {major}, {codename}.
"""
import bz2
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from storage import families
from storage.exceptions import MalformedInputError, UnknownFamilyError
from storage.models import FetchMeta, Root, major_version

from .http_client import HttpClient
from .oval_parser import parse_oval

logger = logging.getLogger(__name__)

SUSE_URL_TEMPLATE = "http://ftp.suse.com/pub/projects/security/oval/{family}.{version}.xml"

DEFAULT_URL_TEMPLATES = {
    families.REDHAT: "https://www.redhat.com/security/data/oval/com.redhat.rhsa-RHEL{major}.xml.bz2",
    families.ORACLE: "https://linux.oracle.com/oval/com.oracle.elsa-all.xml.bz2",
    families.DEBIAN: "https://www.debian.org/security/oval/oval-definitions-{codename}.xml",
}
for _suse_family in families.SUSE_FAMILIES:
    DEFAULT_URL_TEMPLATES[_suse_family] = SUSE_URL_TEMPLATE

# Feeds that publish every release in one file
ALL_RELEASES_IN_ONE_FILE = {families.ORACLE}


@dataclass
class FeedTarget:
    """One (family, OS version) to refresh and where its OVAL file lives."""
    family: str
    os_version: str
    url: str

    @property
    def file_name(self) -> str:
        """fetch_meta key: trailing URL segment, per release for shared files."""
        name = self.url.rstrip("/").split("/")[-1]
        if self.family in ALL_RELEASES_IN_ONE_FILE:
            return f"{name}:{major_version(self.os_version)}"
        return name


@dataclass
class FetchResult:
    target: FeedTarget
    root: Root
    meta: FetchMeta


def build_target(family: str, version: str, feeds_config: Optional[Dict[str, Any]] = None) -> FeedTarget:
    """
    Resolve the feed URL of one (family, OS version).

    Raises:
        UnknownFamilyError: If the family has no feed
        ValueError: If a Debian version has no known codename
    """
    if family not in DEFAULT_URL_TEMPLATES:
        raise UnknownFamilyError(family)

    family_config = (feeds_config or {}).get(family) or {}
    template = family_config.get("url_template", DEFAULT_URL_TEMPLATES[family])

    major = major_version(version)
    codename = ""
    if family == families.DEBIAN:
        codename = families.DEBIAN_CODENAMES.get(major)
        if codename is None:
            raise ValueError(f"No Debian codename known for version {version}")
    url = template.format(family=family, version=version, major=major, codename=codename)
    return FeedTarget(family=family, os_version=version, url=url)


def build_targets(family: str, versions: List[str], feeds_config: Optional[Dict[str, Any]] = None) -> List[FeedTarget]:
    """Resolve feed URLs for a family and a list of OS versions."""
    return [build_target(family, version, feeds_config) for version in versions]


def fetch_target(client: HttpClient, target: FeedTarget) -> FetchResult:
    """
    Download and parse one feed file.

    Raises:
        requests.RequestException, CircuitOpenError: On download failure
        MalformedInputError: If the file cannot be decompressed or parsed
    """
    logger.info(f"Fetching {target.family} {target.os_version} from {target.url}")
    content = client.get_bytes(target.url)

    if target.url.endswith(".bz2"):
        try:
            content = bz2.decompress(content)
        except OSError as e:
            raise MalformedInputError(f"Failed to decompress {target.url}: {e}") from e

    document = parse_oval(content, target.family, target.os_version)
    logger.info(f"  {len(document.definitions)} OVAL definitions")

    root = Root(
        family=target.family,
        os_version=target.os_version,
        definitions=document.definitions,
    )
    meta = FetchMeta(file_name=target.file_name, timestamp=document.timestamp)
    return FetchResult(target=target, root=root, meta=meta)
