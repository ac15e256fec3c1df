"""
OS family discriminators used as the top-level partition key for stored data.
"""

REDHAT = "redhat"
DEBIAN = "debian"
ORACLE = "oracle"
OPENSUSE = "opensuse"
OPENSUSE_LEAP = "opensuse.leap"
SUSE_ENTERPRISE_SERVER = "suse.linux.enterprise.server"
SUSE_ENTERPRISE_DESKTOP = "suse.linux.enterprise.desktop"
SUSE_OPENSTACK_CLOUD = "suse.openstack.cloud"

SUSE_FAMILIES = (
    OPENSUSE,
    OPENSUSE_LEAP,
    SUSE_ENTERPRISE_SERVER,
    SUSE_ENTERPRISE_DESKTOP,
    SUSE_OPENSTACK_CLOUD,
)

ALL_FAMILIES = (REDHAT, DEBIAN, ORACLE) + SUSE_FAMILIES

# Debian publishes one OVAL file per release codename
DEBIAN_CODENAMES = {
    "7": "wheezy",
    "8": "jessie",
    "9": "stretch",
    "10": "buster",
    "11": "bullseye",
    "12": "bookworm",
    "13": "trixie",
}
