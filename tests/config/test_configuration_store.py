"""
Tests for audit_config.store -- ConfigurationStore.

Partial merges, validation of every field type, and the guarantee that a
rejected update leaves the store untouched.
"""

from decimal import Decimal

import pytest

from audit_config import (
    DEFAULT_AUDIT_CONFIGURATION,
    AuditFrequency,
    ConfigurationStore,
    ValidationLevel,
    load_audit_configuration,
)
from audit_kernel.exceptions import InvalidConfigurationError, ReferenceDataError


class TestDefaults:

    def test_documented_defaults(self):
        config = ConfigurationStore().snapshot()

        assert config.frequency == AuditFrequency.REAL_TIME
        assert config.validation_level == ValidationLevel.BASIC
        assert config.apply_corrections_automatically is False
        assert config.notify_on_inconsistency is True
        assert config.confidence_threshold == Decimal("0.85")
        assert config.persist_history is True
        assert config.use_ai is True


class TestConfigure:

    def setup_method(self):
        self.store = ConfigurationStore()

    def test_partial_merge_keeps_other_fields(self):
        config = self.store.configure({"validation_level": "full"})

        assert config.validation_level == ValidationLevel.FULL
        assert config.frequency == AuditFrequency.REAL_TIME
        assert config.confidence_threshold == Decimal("0.85")

    def test_keyword_changes(self):
        config = self.store.configure(frequency="weekly", use_ai=False)

        assert config.frequency == AuditFrequency.WEEKLY
        assert config.use_ai is False

    def test_keywords_override_mapping(self):
        config = self.store.configure({"frequency": "daily"}, frequency="weekly")
        assert config.frequency == AuditFrequency.WEEKLY

    def test_enum_members_accepted(self):
        config = self.store.configure(validation_level=ValidationLevel.ADVANCED)
        assert config.validation_level == ValidationLevel.ADVANCED

    @pytest.mark.parametrize("threshold", [0, 1, "0.5", 0.75, Decimal("0.99")])
    def test_threshold_within_range(self, threshold):
        config = self.store.configure(confidence_threshold=threshold)
        assert config.confidence_threshold == Decimal(str(threshold))

    def test_float_threshold_converted_exactly(self):
        config = self.store.configure(confidence_threshold=0.7)
        assert config.confidence_threshold == Decimal("0.7")

    def test_updates_accumulate(self):
        self.store.configure(validation_level="full")
        self.store.configure(use_ai=False)
        snapshot = self.store.snapshot()

        assert snapshot.validation_level == ValidationLevel.FULL
        assert snapshot.use_ai is False

    def test_snapshot_is_stable_across_updates(self):
        before = self.store.snapshot()
        self.store.configure(validation_level="advanced")

        assert before.validation_level == ValidationLevel.BASIC

    def test_reset_restores_defaults(self):
        self.store.configure(validation_level="advanced", use_ai=False)
        assert self.store.reset() == DEFAULT_AUDIT_CONFIGURATION
        assert self.store.snapshot() == DEFAULT_AUDIT_CONFIGURATION


class TestConfigureValidation:

    def setup_method(self):
        self.store = ConfigurationStore()

    @pytest.mark.parametrize("threshold", [-0.1, 1.01, "1.5", "abc", True, float("nan")])
    def test_threshold_out_of_range_rejected(self, threshold):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            self.store.configure(confidence_threshold=threshold)

        assert exc_info.value.field == "confidence_threshold"
        assert self.store.snapshot().confidence_threshold == Decimal("0.85")

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            self.store.configure({"frequncy": "daily"})
        assert exc_info.value.code == "INVALID_CONFIGURATION"
        assert exc_info.value.field == "frequncy"

    def test_bad_enum_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="expected one of"):
            self.store.configure(frequency="hourly")

    def test_non_bool_flag_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            self.store.configure(use_ai="yes")

    def test_rejected_update_is_atomic(self):
        """A bad field anywhere in the update means nothing is applied."""
        with pytest.raises(InvalidConfigurationError):
            self.store.configure(validation_level="full", confidence_threshold=2)

        assert self.store.snapshot() == DEFAULT_AUDIT_CONFIGURATION


class TestLoadAuditConfiguration:

    def test_top_level_mapping(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("validation_level: advanced\nconfidence_threshold: '0.9'\n")
        store = ConfigurationStore()

        config = load_audit_configuration(path, store)

        assert config.validation_level == ValidationLevel.ADVANCED
        assert config.confidence_threshold == Decimal("0.9")
        assert store.snapshot() == config

    def test_nested_under_audit_key(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("audit:\n  frequency: daily\n  persist_history: false\n")

        config = load_audit_configuration(path, ConfigurationStore())

        assert config.frequency == AuditFrequency.DAILY
        assert config.persist_history is False

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("confidence_threshold: 3\n")

        with pytest.raises(InvalidConfigurationError):
            load_audit_configuration(path, ConfigurationStore())

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("audit:\n  - daily\n")

        with pytest.raises(ReferenceDataError):
            load_audit_configuration(path, ConfigurationStore())
