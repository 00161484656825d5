"""
Unit tests for normalization modules.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from registry_verify.normalize.config import MatchConfig, load_match_config, save_match_config
from registry_verify.normalize.text_normalizer import TextNormalizer
from registry_verify.normalize.address_normalizer import AddressNormalizer, municipalities_match


class TestTextNormalizer:
    """Test cases for text normalization."""

    def setup_method(self):
        """Setup test fixtures."""
        self.normalizer = TextNormalizer(MatchConfig.from_dict({}))

    def test_normalize_basic(self):
        """Test case, accents, punctuation and whitespace."""
        assert self.normalizer.normalize("  Clínica   San José, S.L. ") == "CLINICA SAN JOSE SAN L"
        assert self.normalizer.normalize("Peña-Grande") == "PENA GRANDE"
        assert self.normalizer.normalize("") == ""
        assert self.normalizer.normalize(None) == ""
        assert self.normalizer.normalize(10600) == ""

    def test_abbreviation_expansion(self):
        """Test abbreviation table."""
        assert self.normalizer.normalize("Av. Príncipe") == self.normalizer.normalize("AVENIDA PRINCIPE")
        assert self.normalizer.normalize("Hosp. S. Juan de Dios") == "HOSPITAL SAN JUAN DE DIOS"
        assert self.normalizer.normalize("C/ Mayor, 23") == "CALLE MAYOR 23"
        assert self.normalizer.normalize("Avda Europa") == "AVENIDA EUROPA"
        assert self.normalizer.normalize("Ctra. de Toledo") == "CARRETERA DE TOLEDO"
        assert self.normalizer.normalize("Pº de la Castellana") == "PASEO DE LA CASTELLANA"
        assert self.normalizer.normalize("Sta. María") == "SANTA MARIA"

    def test_abbreviation_requires_word_boundary(self):
        """Abbreviations inside longer words are left alone."""
        assert self.normalizer.normalize("Costa Brava") == "COSTA BRAVA"
        assert self.normalizer.normalize("Cristo") == "CRISTO"

    def test_normalize_idempotent(self):
        """Normalizing twice gives the same result."""
        samples = [
            "Av. Príncipe de Asturias, nº 5",
            "Hosp. Ntra. Sra. del Pilar",
            "C/STA_CRUZ 12-B",
            "Farmacia Ldo. Pérez (Pº Marítimo)",
            "avda_europa",
            "ÑANDÚ   ctra.  km 3,5",
            "",
        ]
        for sample in samples:
            once = self.normalizer.normalize(sample)
            assert self.normalizer.normalize(once) == once

    def test_tokenize(self):
        """Test stop-word filtering and numeric tokens."""
        assert self.normalizer.tokenize("Calle de la Paz 5") == ["calle", "paz", "5"]
        assert self.normalizer.tokenize("Portal A 1") == ["portal", "1"]
        assert self.normalizer.tokenize("Centro de Salud Los Yébenes") == ["centro", "salud", "yebenes"]
        assert self.normalizer.tokenize("") == []
        assert self.normalizer.tokenize(None) == []

    def test_tokenize_custom_stop_words(self):
        """Stop words come from the configuration."""
        normalizer = TextNormalizer(MatchConfig.from_dict({
            "normalization": {"stop_words": ["centro"]}
        }))
        assert normalizer.tokenize("Centro de Salud") == ["de", "salud"]


class TestAddressNormalizer:
    """Test cases for address normalization."""

    def setup_method(self):
        """Setup test fixtures."""
        self.normalizer = AddressNormalizer(MatchConfig.from_dict({}))

    def test_street_core(self):
        """Via-type words are removed before comparing street names."""
        assert self.normalizer.street_core("Calle Mayor 10") == "mayor 10"
        assert self.normalizer.street_core("Avenida Mayor 10") == "mayor 10"
        assert self.normalizer.street_core("Av. de la Constitución") == "constitucion"
        assert self.normalizer.street_core("Carrer de Balmes") == "balmes"
        assert self.normalizer.street_core("Plaza") == ""
        assert self.normalizer.street_core(None) == ""

    def test_extract_house_number_trailing(self):
        """Trailing numbers win."""
        assert self.normalizer.extract_house_number("Valcorchero 2") == "2"
        assert self.normalizer.extract_house_number("C/ Mayor, 23B") == "23"
        assert self.normalizer.extract_house_number("Calle Mayor,7") == "7"
        assert self.normalizer.extract_house_number("Calle Mayor 23 b") == "23"

    def test_extract_house_number_marker(self):
        """Explicit markers are used when no trailing number exists."""
        assert self.normalizer.extract_house_number("Calle Mayor nº 5 bajo") == "5"
        assert self.normalizer.extract_house_number("Calle Mayor num. 12 izq") == "12"
        assert self.normalizer.extract_house_number("Calle Mayor número 8, 2º dcha") == "8"

    def test_extract_house_number_missing(self):
        """No number yields None."""
        assert self.normalizer.extract_house_number("Calle Mayor") is None
        assert self.normalizer.extract_house_number("Calle Mayor 12345") is None
        assert self.normalizer.extract_house_number("") is None
        assert self.normalizer.extract_house_number(None) is None

    def test_normalize_postal_code(self):
        """First 5-digit run anywhere in the value."""
        assert self.normalizer.normalize_postal_code("10600") == "10600"
        assert self.normalizer.normalize_postal_code("CP 10600 Plasencia") == "10600"
        assert self.normalizer.normalize_postal_code("1060") is None
        assert self.normalizer.normalize_postal_code(None) is None

    def test_extract_first_number(self):
        """Registry number cells use the first 1-4 digit run."""
        assert self.normalizer.extract_first_number("2") == "2"
        assert self.normalizer.extract_first_number("S/N") is None
        assert self.normalizer.extract_first_number("12-14") == "12"
        assert self.normalizer.extract_first_number(None) is None

    def test_municipalities_match(self):
        """Bidirectional containment, including the known short-name over-match."""
        assert municipalities_match("PLASENCIA", "PLASENCIA")
        assert municipalities_match("ALCALA DE HENARES", "ALCALA")
        assert municipalities_match("LUGO", "VILLALUGO")
        assert not municipalities_match("CACERES", "PLASENCIA")
        assert not municipalities_match("", "PLASENCIA")


class TestMatchConfig:
    """Test cases for configuration loading."""

    def test_defaults(self):
        """Default constants."""
        config = MatchConfig.from_dict({})
        assert config.thresholds.alta == 0.85
        assert config.thresholds.baja == 0.65
        assert config.name_weight == 0.50
        assert config.street_weight == 0.35
        assert config.max_fallback_candidates == 4000
        assert config.column_map["service_offering"] == "AC"
        assert "de" in config.stop_words
        assert "calle" in config.via_words

    def test_invalid_thresholds(self):
        """Thresholds must satisfy 0 <= baja < alta <= 1."""
        with pytest.raises(ValueError):
            MatchConfig.from_dict({"scoring": {"thresholds": {"alta": 0.6, "baja": 0.7}}})
        with pytest.raises(ValueError):
            MatchConfig.from_dict({"scoring": {"thresholds": {"alta": 1.2, "baja": 0.7}}})

    def test_invalid_column_letter(self):
        """Column letters must be alphabetic."""
        with pytest.raises(ValueError):
            MatchConfig.from_dict({"registry": {"column_letters": {"name": "5"}}})

    def test_missing_file_uses_defaults(self, tmp_path):
        """A missing configuration file falls back to defaults."""
        config = load_match_config(str(tmp_path / "missing.yaml"))
        assert config == MatchConfig.from_dict({})

    def test_save_and_load(self, tmp_path):
        """Saved overrides are merged over the defaults on load."""
        config_path = tmp_path / "config" / "registry_verify.yaml"
        assert save_match_config({"scoring": {"thresholds": {"alta": 0.9, "baja": 0.5}}}, str(config_path))

        config = load_match_config(str(config_path))
        assert config.thresholds.alta == 0.9
        assert config.thresholds.baja == 0.5
        assert config.name_weight == 0.50

    def test_to_dict_round_trip(self, tmp_path):
        """A saved effective configuration loads back to the same MatchConfig."""
        config = MatchConfig.from_dict({
            "scoring": {"thresholds": {"alta": 0.9, "baja": 0.5}, "top_k": 5},
            "registry": {"column_resolution": "auto"},
        })
        assert MatchConfig.from_dict(config.to_dict()) == config

        config_path = tmp_path / "config_used.yaml"
        assert save_match_config(config.to_dict(), str(config_path))
        assert load_match_config(str(config_path)) == config


if __name__ == "__main__":
    pytest.main([__file__])
