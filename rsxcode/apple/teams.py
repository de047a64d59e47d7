#
# Copyright 2024 rsxcode Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Signing teams available in the login keychain.

The `development_team` value for a device build is the organizational unit
of an Apple development certificate.
"""

import datetime
import re
from dataclasses import dataclass
from typing import List, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from rsxcode.errors import STAGE_QUERY, ToolingError
from rsxcode.utils.cmd.cmd_util import Command, Executor
from rsxcode.utils.console import print_debug

CERTIFICATE_NAME_PATTERNS = ("Development:", "Developer:")

PEM_BLOCK_RE = re.compile(
    r"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)


@dataclass(frozen=True, order=True)
class Team:
    common_name: str
    organization: str
    organization_unit: str

    def __str__(self):
        return f"{self.organization_unit}  {self.organization}  ({self.common_name})"


def _name_attribute(name: x509.Name, oid) -> Optional[str]:
    values = name.get_attributes_for_oid(oid)
    if not values:
        return None
    return values[0].value


def team_from_certificate(cert: x509.Certificate, now=None) -> Optional[Team]:
    """Team of a development certificate, None when expired or incomplete."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    if not (cert.not_valid_before_utc <= now <= cert.not_valid_after_utc):
        return None
    common_name = _name_attribute(cert.subject, NameOID.COMMON_NAME)
    organization = _name_attribute(cert.subject, NameOID.ORGANIZATION_NAME)
    unit = _name_attribute(cert.subject, NameOID.ORGANIZATIONAL_UNIT_NAME)
    if not (common_name and organization and unit):
        return None
    return Team(common_name, organization, unit)


def parse_teams(pem_text: str, now=None) -> List[Team]:
    teams = set()
    for block in PEM_BLOCK_RE.findall(pem_text):
        try:
            cert = x509.load_pem_x509_certificate(block.encode("ascii"))
        except ValueError as e:
            print_debug(f"Skipping unreadable certificate: {e}")
            continue
        team = team_from_certificate(cert, now=now)
        if team is not None:
            teams.add(team)
    return sorted(teams)


def list_teams(executor: Executor, now=None) -> List[Team]:
    """
    Query the keychain for development certificates.

    Returns:
        Deduplicated teams sorted by common name
    """
    pem_text = ""
    for pattern in CERTIFICATE_NAME_PATTERNS:
        outcome = executor.execute(Command(
            "security", ("find-certificate", "-p", "-a", "-c", pattern), stage=STAGE_QUERY,
        ))
        # security exits 44 when no certificate matches
        if outcome.returncode == 44:
            continue
        if not outcome.success:
            raise ToolingError("Failed to query signing certificates", tool="security",
                               exit_status=outcome.returncode, output=outcome.output,
                               stage=STAGE_QUERY)
        pem_text += outcome.stdout
    return parse_teams(pem_text, now=now)
