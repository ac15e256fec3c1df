"""
OVAL XML parser.

Turns one OVAL definitions document into the storage model:
- generator timestamp -> snapshot timestamp for fetch_meta
- <definition> metadata -> Definition, Advisory, Cve, Bugzilla, Cpe,
  Reference and (Debian) Debian records
- <criterion comment="..."> -> affected Packages

Package comments differ per family:
    RedHat/Oracle  "openssl is earlier than 1:1.0.2k-8.el7"
    SUSE           "libfoo-1.2.3-4.1 is installed"
    Debian         "libfoo DPKG is earlier than 1.2-3"
                   "libfoo DPKG is installed"   (no fix yet)
"""
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from storage import families
from storage.exceptions import MalformedInputError
from storage.models import (
    Advisory,
    Bugzilla,
    Cpe,
    Cve,
    Debian,
    Definition,
    Package,
    Reference,
    major_version,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S.%f")

RPM_EARLIER_THAN = re.compile(r"^(\S+) is earlier than (\S+)$")
SUSE_INSTALLED = re.compile(r"^(\S+)-([^-\s]+)-([^-\s]+) is installed$")
DPKG_EARLIER_THAN = re.compile(r"^(\S+) DPKG is earlier than (\S+)$")
DPKG_INSTALLED = re.compile(r"^(\S+) DPKG is installed$")
ORACLE_PLATFORM = re.compile(r"^Oracle Linux (\d+) is installed$")


@dataclass
class OvalDocument:
    """A parsed OVAL file: generator timestamp plus its definitions."""
    timestamp: datetime
    definitions: List[Definition] = field(default_factory=list)


def local_tag(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem:
        if local_tag(child.tag) == name:
            return child
    return None


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in elem if local_tag(child.tag) == name]


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an OVAL generator timestamp.

    Raises:
        MalformedInputError: If the value matches none of the known formats
    """
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    raise MalformedInputError(f"Unparseable OVAL generator timestamp: {value!r}")


def parse_oval(xml_content: bytes, family: str, os_version: str) -> OvalDocument:
    """
    Parse an OVAL document for one family and OS version.

    Args:
        xml_content: Raw (decompressed) XML
        family: Family discriminator the document belongs to
        os_version: OS version the document is stored under

    Raises:
        MalformedInputError: On invalid XML, a missing or unparseable
            generator timestamp, or a definition without an id
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise MalformedInputError(f"Invalid OVAL XML for {family} {os_version}: {e}") from e

    generator = _child(root, "generator")
    timestamp_text = _text(_child(generator, "timestamp")) if generator is not None else ""
    if not timestamp_text:
        raise MalformedInputError(f"OVAL document for {family} {os_version} has no generator timestamp")
    timestamp = parse_timestamp(timestamp_text)

    definitions = []
    definitions_elem = _child(root, "definitions")
    if definitions_elem is not None:
        for elem in _children(definitions_elem, "definition"):
            if elem.get("class") == "inventory":
                continue
            definition = convert_definition(elem, family, os_version)
            if definition is not None:
                definitions.append(definition)

    logger.debug(f"Parsed {len(definitions)} definitions for {family} {os_version}")
    return OvalDocument(timestamp=timestamp, definitions=definitions)


def convert_definition(elem: ET.Element, family: str, os_version: str) -> Optional[Definition]:
    """
    Convert one <definition> element.

    Returns None for an Oracle definition that does not apply to os_version.
    """
    def_id = elem.get("id")
    if not def_id:
        raise MalformedInputError(f"OVAL definition without id in {family} {os_version}")

    metadata = _child(elem, "metadata")
    if metadata is None:
        metadata = ET.Element("metadata")

    if family == families.ORACLE and not _applies_to_oracle_version(metadata, os_version):
        return None

    references = [
        Reference(
            source=ref.get("source", ""),
            ref_id=ref.get("ref_id", ""),
            ref_url=ref.get("ref_url", ""),
        )
        for ref in _children(metadata, "reference")
    ]

    advisory = _convert_advisory(_child(metadata, "advisory"), references)
    title = _text(_child(metadata, "title"))

    debian = None
    if family == families.DEBIAN:
        deb_elem = _child(metadata, "debian")
        debian = Debian(
            cve_id=title,
            more_info=_text(_child(deb_elem, "moreinfo")) if deb_elem is not None else "",
            dsa=_text(_child(deb_elem, "dsa")) if deb_elem is not None else "",
            date=_text(_child(deb_elem, "date")) if deb_elem is not None else "",
        )

    packages = []
    criteria = _child(elem, "criteria")
    if criteria is not None:
        for package, platform in _collect_packages(criteria, None):
            if platform is not None and platform != major_version(os_version):
                continue
            packages.append(package)

    return Definition(
        definition_id=def_id,
        title=title,
        description=_text(_child(metadata, "description")),
        severity=advisory.severity,
        advisory=advisory,
        affected_packs=_dedupe_packages(packages),
        references=references,
        debian=debian,
    )


def _convert_advisory(adv_elem: Optional[ET.Element], references: List[Reference]) -> Advisory:
    advisory = Advisory()

    if adv_elem is not None:
        advisory.severity = _text(_child(adv_elem, "severity"))
        issued = _child(adv_elem, "issued")
        updated = _child(adv_elem, "updated")
        advisory.issued = issued.get("date", "") if issued is not None else ""
        advisory.updated = updated.get("date", "") if updated is not None else ""
        advisory.cves = [
            Cve(
                cve_id=_text(c),
                cvss2=c.get("cvss2", ""),
                cvss3=c.get("cvss3", ""),
                cwe=c.get("cwe", ""),
                href=c.get("href", ""),
                public=c.get("public", ""),
            )
            for c in _children(adv_elem, "cve")
            if _text(c)
        ]
        advisory.bugzillas = [
            Bugzilla(bugzilla_id=b.get("id", ""), url=b.get("href", ""), title=_text(b))
            for b in _children(adv_elem, "bugzilla")
        ]
        cpe_list = _child(adv_elem, "affected_cpe_list")
        if cpe_list is not None:
            advisory.affected_cpe_list = [Cpe(cpe=_text(c)) for c in _children(cpe_list, "cpe") if _text(c)]

    # Advisory ids come from the vendor reference (RHSA, ELSA, DSA, SUSE-SU)
    for ref in references:
        if ref.source and ref.source.upper() != "CVE":
            advisory.advisory_id = ref.ref_id
            break

    # SUSE and Debian list CVEs only as references
    if not advisory.cves:
        advisory.cves = [
            Cve(cve_id=ref.ref_id, href=ref.ref_url)
            for ref in references
            if ref.source.upper() == "CVE" and ref.ref_id
        ]

    return advisory


def _applies_to_oracle_version(metadata: ET.Element, os_version: str) -> bool:
    wanted = f"Oracle Linux {major_version(os_version)}"
    affected = _child(metadata, "affected")
    if affected is None:
        return False
    return any(_text(p) == wanted for p in _children(affected, "platform"))


def _collect_packages(criteria: ET.Element, platform: Optional[str]) -> List[Tuple[Package, Optional[str]]]:
    """
    Walk a criteria tree and return (package, platform major) pairs.

    An "Oracle Linux N is installed" criterion scopes the packages of its
    enclosing criteria to release N.
    """
    for crit in _children(criteria, "criterion"):
        match = ORACLE_PLATFORM.match(crit.get("comment", "").strip())
        if match:
            platform = match.group(1)

    found = []
    for child in criteria:
        tag = local_tag(child.tag)
        if tag == "criterion":
            package = parse_package_comment(child.get("comment", ""))
            if package is not None:
                found.append((package, platform))
        elif tag == "criteria":
            found.extend(_collect_packages(child, platform))
    return found


def parse_package_comment(comment: str) -> Optional[Package]:
    """Extract an affected package from a criterion comment, if it names one."""
    comment = comment.strip()

    match = DPKG_EARLIER_THAN.match(comment)
    if match:
        return Package(name=match.group(1), version=match.group(2))

    match = DPKG_INSTALLED.match(comment)
    if match:
        return Package(name=match.group(1), version="", not_fixed_yet=True)

    match = RPM_EARLIER_THAN.match(comment)
    if match:
        return Package(name=match.group(1), version=match.group(2))

    match = SUSE_INSTALLED.match(comment)
    if match:
        return Package(name=match.group(1), version=f"{match.group(2)}-{match.group(3)}")

    return None


def _dedupe_packages(packages: List[Package]) -> List[Package]:
    seen = set()
    unique = []
    for p in packages:
        key = (p.name, p.version)
        if key not in seen:
            seen.add(key)
            unique.append(p)
    return unique
