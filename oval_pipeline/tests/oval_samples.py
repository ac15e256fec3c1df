"""
Canned OVAL documents shared by the parser, feed and pipeline tests.
"""

OVAL_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<oval_definitions xmlns="http://oval.mitre.org/XMLSchema/oval-definitions-5"
                  xmlns:oval="http://oval.mitre.org/XMLSchema/oval-common-5">
  <generator>
    <oval:product_name>test generator</oval:product_name>
    <oval:schema_version>5.10</oval:schema_version>
    <oval:timestamp>{timestamp}</oval:timestamp>
  </generator>
  <definitions>
"""

OVAL_FOOTER = """
  </definitions>
</oval_definitions>
"""


def oval_document(definitions: str, timestamp: str = "2099-01-01T05:05:39") -> bytes:
    return (OVAL_HEADER.format(timestamp=timestamp) + definitions + OVAL_FOOTER).encode("utf-8")


REDHAT_DEFINITION = """
    <definition class="patch" id="oval:com.redhat.rhsa:def:20990001" version="601">
      <metadata>
        <title>RHSA-2099:0001: openssl security update (Important)</title>
        <affected family="unix">
          <platform>Red Hat Enterprise Linux 7</platform>
        </affected>
        <reference ref_id="RHSA-2099:0001" ref_url="https://access.redhat.com/errata/RHSA-2099:0001" source="RHSA"/>
        <reference ref_id="CVE-2099-0001" ref_url="https://access.redhat.com/security/cve/CVE-2099-0001" source="CVE"/>
        <description>OpenSSL is a toolkit.</description>
        <advisory from="secalert@redhat.com">
          <severity>Important</severity>
          <issued date="2099-01-01"/>
          <updated date="2099-01-02"/>
          <cve cvss3="7.5/CVSS:3.0/AV:N" cwe="CWE-400" href="https://access.redhat.com/security/cve/CVE-2099-0001" public="20981231">CVE-2099-0001</cve>
          <bugzilla href="https://bugzilla.redhat.com/1001" id="1001">CVE-2099-0001 openssl: denial of service</bugzilla>
          <affected_cpe_list>
            <cpe>cpe:/o:redhat:enterprise_linux:7</cpe>
          </affected_cpe_list>
        </advisory>
      </metadata>
      <criteria operator="OR">
        <criterion comment="Red Hat Enterprise Linux must be installed" test_ref="oval:com.redhat.rhsa:tst:1"/>
        <criteria operator="AND">
          <criterion comment="openssl is earlier than 1:1.0.2k-8.el7" test_ref="oval:com.redhat.rhsa:tst:2"/>
          <criterion comment="openssl is signed with Red Hat redhatrelease2 key" test_ref="oval:com.redhat.rhsa:tst:3"/>
          <criterion comment="openssl-libs is earlier than 1:1.0.2k-8.el7" test_ref="oval:com.redhat.rhsa:tst:4"/>
        </criteria>
      </criteria>
    </definition>
"""

SUSE_DEFINITION = """
    <definition class="vulnerability" id="oval:org.opensuse.security:def:20990001" version="1">
      <metadata>
        <title>CVE-2099-0001</title>
        <affected family="unix">
          <platform>openSUSE 13.2</platform>
        </affected>
        <reference ref_id="CVE-2099-0001" ref_url="https://www.suse.com/security/cve/CVE-2099-0001/" source="CVE"/>
        <description>libfoo overflow.</description>
      </metadata>
      <criteria operator="AND">
        <criterion comment="openSUSE 13.2 is installed" test_ref="oval:org.opensuse.security:tst:1"/>
        <criteria operator="OR">
          <criterion comment="libfoo-1.2.3-4.1 is installed" test_ref="oval:org.opensuse.security:tst:2"/>
          <criterion comment="libfoo-devel-1.2.3-4.1 is installed" test_ref="oval:org.opensuse.security:tst:3"/>
        </criteria>
      </criteria>
    </definition>
"""

DEBIAN_DEFINITION = """
    <definition class="vulnerability" id="oval:org.debian:def:20990100" version="1">
      <metadata>
        <title>CVE-2099-0100</title>
        <affected family="unix">
          <platform>Debian GNU/Linux 9</platform>
          <product>curl</product>
        </affected>
        <reference ref_id="CVE-2099-0100" ref_url="https://security-tracker.debian.org/tracker/CVE-2099-0100" source="CVE"/>
        <description>curl use after free.</description>
        <debian>
          <moreinfo>Fixed in stretch security.</moreinfo>
          <dsa>DSA-9999-1</dsa>
          <date>2099-01-03</date>
        </debian>
      </metadata>
      <criteria comment="Release section" operator="AND">
        <criterion comment="Debian 9.0 is installed" test_ref="oval:org.debian.oval:tst:1"/>
        <criteria comment="Architecture section" operator="OR">
          <criteria comment="Architecture independent section" operator="AND">
            <criterion comment="all architecture" test_ref="oval:org.debian.oval:tst:2"/>
            <criterion comment="curl DPKG is earlier than 7.52.1-5+deb9u9" test_ref="oval:org.debian.oval:tst:3"/>
            <criterion comment="libcurl3 DPKG is installed" test_ref="oval:org.debian.oval:tst:4"/>
          </criteria>
        </criteria>
      </criteria>
    </definition>
"""

ORACLE_DEFINITION = """
    <definition class="patch" id="oval:com.oracle.elsa:def:20990001" version="501">
      <metadata>
        <title>ELSA-2099-0001:  openssl security update (IMPORTANT)</title>
        <affected family="unix">
          <platform>Oracle Linux 6</platform>
          <platform>Oracle Linux 7</platform>
        </affected>
        <reference ref_id="ELSA-2099-0001" ref_url="https://linux.oracle.com/errata/ELSA-2099-0001.html" source="elsa"/>
        <reference ref_id="CVE-2099-0001" ref_url="https://linux.oracle.com/cve/CVE-2099-0001.html" source="CVE"/>
        <description>openssl update</description>
        <advisory>
          <severity>IMPORTANT</severity>
          <rights>Copyright 2099 Oracle, Inc.</rights>
          <issued date="2099-01-01"/>
          <cve href="https://linux.oracle.com/cve/CVE-2099-0001.html">CVE-2099-0001</cve>
        </advisory>
      </metadata>
      <criteria operator="OR">
        <criteria operator="AND">
          <criterion comment="Oracle Linux 6 is installed" test_ref="oval:com.oracle.elsa:tst:1"/>
          <criteria operator="OR">
            <criterion comment="openssl is earlier than 0:1.0.1e-58.0.1.el6_10" test_ref="oval:com.oracle.elsa:tst:2"/>
          </criteria>
        </criteria>
        <criteria operator="AND">
          <criterion comment="Oracle Linux 7 is installed" test_ref="oval:com.oracle.elsa:tst:3"/>
          <criteria operator="OR">
            <criterion comment="openssl is earlier than 1:1.0.2k-19.0.1.el7" test_ref="oval:com.oracle.elsa:tst:4"/>
          </criteria>
        </criteria>
      </criteria>
    </definition>

    <definition class="patch" id="oval:com.oracle.elsa:def:20990002" version="501">
      <metadata>
        <title>ELSA-2099-0002:  kernel update (IMPORTANT)</title>
        <affected family="unix">
          <platform>Oracle Linux 8</platform>
        </affected>
        <reference ref_id="ELSA-2099-0002" ref_url="https://linux.oracle.com/errata/ELSA-2099-0002.html" source="elsa"/>
        <description>kernel update</description>
      </metadata>
      <criteria operator="AND">
        <criterion comment="Oracle Linux 8 is installed" test_ref="oval:com.oracle.elsa:tst:5"/>
        <criterion comment="kernel is earlier than 0:4.18.0-1.el8" test_ref="oval:com.oracle.elsa:tst:6"/>
      </criteria>
    </definition>
"""
