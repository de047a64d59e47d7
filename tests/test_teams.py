"""Tests for listing signing teams from keychain certificates."""

from __future__ import annotations

import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from rsxcode.apple.teams import Team, list_teams, parse_teams
from rsxcode.errors import ToolingError

NOW = datetime.datetime(2024, 6, 1, tzinfo=datetime.timezone.utc)


def make_pem(common_name: str, organization: str | None, unit: str | None, days_valid: int = 365,
             not_before: datetime.datetime = NOW - datetime.timedelta(days=1)) -> str:
    key = ec.generate_private_key(ec.SECP256R1())
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    if organization:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
    if unit:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, unit))
    name = x509.Name(attributes)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + datetime.timedelta(days=days_valid))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


class TestParseTeams:
    def test_extracts_team(self):
        pem = make_pem("Apple Development: Jane Doe (XYZ)", "Jane Doe", "TEAM123")
        assert parse_teams(pem, now=NOW) == [Team("Apple Development: Jane Doe (XYZ)", "Jane Doe", "TEAM123")]

    def test_dedupes_and_sorts(self):
        b = make_pem("iPhone Developer: B", "Org B", "BBB")
        a = make_pem("Apple Development: A", "Org A", "AAA")
        teams = parse_teams(b + a + b, now=NOW)
        assert [t.organization_unit for t in teams] == ["AAA", "BBB"]

    def test_skips_expired_and_incomplete(self):
        expired = make_pem("Apple Development: Old", "Org", "OLD",
                           not_before=NOW - datetime.timedelta(days=400), days_valid=30)
        no_unit = make_pem("Apple Development: Nobody", "Org", None)
        assert parse_teams(expired + no_unit, now=NOW) == []

    def test_skips_garbage_blocks(self):
        garbage = "-----BEGIN CERTIFICATE-----\nbm90IGEgY2VydA==\n-----END CERTIFICATE-----\n"
        good = make_pem("Apple Development: C", "Org C", "CCC")
        assert [t.organization_unit for t in parse_teams(garbage + good, now=NOW)] == ["CCC"]


class TestListTeams:
    def test_queries_both_certificate_names(self, executor):
        executor.on("security", "find-certificate", "-p", "-a", "-c", "Development:",
                    stdout=make_pem("Apple Development: A", "Org A", "AAA"))
        executor.on("security", "find-certificate", "-p", "-a", "-c", "Developer:", returncode=44)

        teams = list_teams(executor, now=NOW)

        assert [t.organization_unit for t in teams] == ["AAA"]
        assert len(executor.calls("security")) == 2

    def test_security_failure(self, executor):
        executor.on("security", returncode=1, stderr="keychain locked")
        with pytest.raises(ToolingError) as exc:
            list_teams(executor)
        assert exc.value.tool == "security"
