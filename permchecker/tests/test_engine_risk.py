"""Tests for the genuine-risk heuristic."""

import pytest

from permchecker.services.engine import risk
from permchecker.services.engine.models import PermissionRecord, ProtectionLevel
from permchecker.services.engine.risk import (
    RISK_RULES,
    explain_risk,
    is_genuine_risk,
    is_routine_operational,
    is_sensitive,
)


def _record(identifier, granted=True, level=ProtectionLevel.DANGEROUS):
    return PermissionRecord(identifier=identifier, granted=granted, protection_level=level)


class TestGenuineRisk:
    """Tests for the genuine-risk decision."""

    @pytest.mark.parametrize("identifier", [
        "android.permission.CAMERA",
        "android.permission.RECORD_AUDIO",
        "android.permission.ACCESS_FINE_LOCATION",
        "android.permission.ACCESS_BACKGROUND_LOCATION",
        "android.permission.READ_CONTACTS",
        "android.permission.SEND_SMS",
        "android.permission.READ_CALL_LOG",
        "android.permission.READ_PHONE_STATE",
        "android.permission.WRITE_CALENDAR",
        "android.permission.BODY_SENSORS",
        "android.permission.ACTIVITY_RECOGNITION",
        "android.permission.READ_EXTERNAL_STORAGE",
        "android.permission.ACCESS_MEDIA_LOCATION",
    ])
    def test_granted_dangerous_sensitive_is_risk(self, identifier):
        """Test granted dangerous sensitive permissions are risks."""
        assert is_genuine_risk(_record(identifier)) is True

    def test_not_granted_is_never_risk(self):
        """Test not granted is never risk."""
        record = _record("android.permission.CAMERA", granted=False)
        assert record.is_genuine_risk is False
        assert explain_risk(record) == ("not_granted", False)

    @pytest.mark.parametrize("level", [
        ProtectionLevel.NORMAL,
        ProtectionLevel.SIGNATURE,
        ProtectionLevel.SIGNATURE_OR_SYSTEM,
        ProtectionLevel.UNKNOWN,
    ])
    def test_non_dangerous_level_is_never_risk(self, level):
        """Test non dangerous level is never risk."""
        record = _record("android.permission.CAMERA", level=level)
        assert record.is_genuine_risk is False
        assert explain_risk(record)[0] == "not_dangerous"

    @pytest.mark.parametrize("identifier", [
        "android.permission.INTERNET",
        "android.permission.POST_NOTIFICATIONS",
        "android.permission.FOREGROUND_SERVICE",
        "android.permission.RECEIVE_BOOT_COMPLETED",
        "android.permission.SCHEDULE_EXACT_ALARM",
    ])
    def test_routine_operational_is_not_risk(self, identifier):
        """Test routine operational is not risk."""
        record = _record(identifier)
        assert record.is_genuine_risk is False
        assert explain_risk(record)[0] == "routine_operational"

    def test_allowlist_overrides_sensitive_keyword(self):
        """Test the routine allowlist beats a sensitive keyword."""
        identifier = "com.example.CAMERA_FOREGROUND_SERVICE"
        assert is_sensitive(identifier)
        assert is_routine_operational(identifier)
        assert explain_risk(_record(identifier)) == ("routine_operational", False)

    def test_unmatched_dangerous_permission_is_not_risk(self):
        """Test unmatched dangerous permission is not risk."""
        record = _record("android.permission.UWB_RANGING")
        assert record.is_genuine_risk is False
        assert explain_risk(record) == ("default", False)

    def test_sensitive_match_is_case_insensitive(self):
        """Test sensitive match is case insensitive."""
        assert is_genuine_risk(_record("com.example.read_sms_lite")) is True

    def test_sensitive_rule_reports_its_name(self):
        """Test sensitive rule reports its name."""
        assert explain_risk(_record("android.permission.CAMERA")) == ("sensitive", True)


class TestRiskRuleTable:
    """Tests for the risk rule table."""

    def test_rule_order(self):
        """Test the rules run in a fixed order."""
        assert [rule.name for rule in RISK_RULES] == [
            "not_granted",
            "not_dangerous",
            "routine_operational",
            "sensitive",
        ]

    def test_custom_rule_table(self):
        """Test a caller-supplied rule table is honoured."""
        record = _record("android.permission.UWB_RANGING")
        rules = RISK_RULES[:2]
        assert explain_risk(record, rules=rules) == ("default", False)

    def test_keyword_rules_use_the_predicates(self, monkeypatch):
        """Test the keyword rules delegate to is_routine_operational and is_sensitive."""
        record = _record("android.permission.CAMERA")
        monkeypatch.setattr(risk, "is_sensitive", lambda identifier: False)
        assert explain_risk(record) == ("default", False)

        monkeypatch.setattr(risk, "is_routine_operational", lambda identifier: True)
        assert explain_risk(record) == ("routine_operational", False)
