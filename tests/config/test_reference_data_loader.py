"""Tests for audit_config.loader -- reference-data parsing."""

from decimal import Decimal

import pytest

from audit_config import DEFAULT_REFERENCE_DATA_PATH, get_reference_data
from audit_config.loader import (
    compute_checksum,
    load_reference_data,
    parse_reference_data,
)
from audit_kernel.exceptions import ReferenceDataError


class TestPackagedReferenceData:

    def test_categories_loaded(self, reference_data):
        names = [c.name for c in reference_data.categories]
        assert names == [
            "Vendas",
            "Folha de Pagamento",
            "Fornecedores",
            "Impostos e Tributos",
        ]

    def test_reference_averages(self, reference_data):
        assert reference_data.category("vendas").reference_average == Decimal("5000")
        assert reference_data.category("Folha de Pagamento").reference_average == Decimal("8000")
        assert reference_data.baseline_average == Decimal("1000")

    def test_tax_rules(self, reference_data):
        rules = {r.rule: r.deadline_day for r in reference_data.tax_deadlines}
        assert rules == {
            "INSS deadline: day 20": 20,
            "FGTS deadline: day 7": 7,
            "PIS/COFINS deadline: day 25": 25,
        }

    def test_suggestion_patterns_ordered(self, reference_data):
        categories = [p.category for p in reference_data.suggestion_patterns]
        assert categories == [
            "Vendas",
            "Folha de Pagamento",
            "Fornecedores",
            "Impostos e Tributos",
            "Aluguel",
            "Utilidades",
        ]

    def test_checksum_present(self, reference_data):
        assert len(reference_data.checksum) == 64

    def test_cached_per_path(self):
        assert get_reference_data() is get_reference_data(DEFAULT_REFERENCE_DATA_PATH)

    def test_tax_category_lookup(self, reference_data):
        assert reference_data.is_tax_category("impostos e tributos")
        assert not reference_data.is_tax_category("Vendas")
        assert not reference_data.is_tax_category(None)


class TestParseReferenceData:

    def test_empty_document_uses_schema_defaults(self):
        data = parse_reference_data({})

        assert data.categories == ()
        assert data.baseline_average == Decimal("1000")
        assert data.fallback_category == "Outros"

    def test_keywords_lowercased(self):
        data = parse_reference_data(
            {"categories": [{"name": "Vendas", "keywords": ["VENDA", "Cliente"]}]}
        )
        assert data.categories[0].keywords == ("venda", "cliente")

    def test_category_without_name_rejected(self):
        with pytest.raises(ReferenceDataError, match="without 'name'"):
            parse_reference_data({"categories": [{"keywords": ["x"]}]})

    def test_non_positive_average_rejected(self):
        with pytest.raises(ReferenceDataError, match="must be positive"):
            parse_reference_data(
                {"categories": [{"name": "Vendas", "reference_average": "0"}]}
            )

    def test_bad_deadline_day_rejected(self):
        with pytest.raises(ReferenceDataError, match="out of range"):
            parse_reference_data({
                "tax_deadlines": [{
                    "terms": ["inss"],
                    "deadline_day": 40,
                    "description": "x",
                    "rule": "y",
                }]
            })

    def test_incomplete_deadline_rejected(self):
        with pytest.raises(ReferenceDataError):
            parse_reference_data({"tax_deadlines": [{"terms": ["inss"]}]})

    def test_bad_regex_rejected(self):
        with pytest.raises(ReferenceDataError, match="bad pattern"):
            parse_reference_data(
                {"suggestion_patterns": [{"category": "Vendas", "pattern": "vend("}]}
            )

    def test_default_coherence_bounds(self):
        with pytest.raises(ReferenceDataError):
            parse_reference_data({"default_coherence": "1.5"})

    def test_error_names_source(self):
        with pytest.raises(ReferenceDataError) as exc_info:
            parse_reference_data({"baseline_average": "abc"}, source="custom.yaml")
        assert exc_info.value.source == "custom.yaml"
        assert exc_info.value.code == "REFERENCE_DATA_INVALID"


class TestLoadReferenceData:

    def test_custom_file(self, tmp_path):
        path = tmp_path / "reference.yaml"
        path.write_text(
            "baseline_average: '250'\n"
            "categories:\n"
            "  - name: Marketing\n"
            "    reference_average: '1200'\n"
            "    keywords: [campanha, anúncio]\n"
        )
        data = load_reference_data(path)

        assert data.baseline_average == Decimal("250")
        assert data.category("marketing").keywords == ("campanha", "anúncio")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_reference_data(tmp_path / "absent.yaml")


class TestChecksum:

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
