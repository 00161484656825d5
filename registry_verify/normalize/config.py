"""
Configuration utilities for RegistryVerify.

Provides configuration loading, validation and the immutable MatchConfig
passed into every matching component.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thresholds:
    """Score thresholds that split results into ALTA / REVISAR / SIN."""

    alta: float = 0.85
    baja: float = 0.65

    def to_dict(self) -> Dict[str, float]:
        return {"alta": self.alta, "baja": self.baja}


@dataclass(frozen=True)
class MatchConfig:
    """
    Immutable matching configuration.

    Holds every constant the engine relies on (weights, bonuses, thresholds,
    word lists, abbreviation table and registry layout) so tests can override
    them without touching engine logic.
    """

    thresholds: Thresholds = field(default_factory=Thresholds)
    name_weight: float = 0.50
    street_weight: float = 0.35
    postal_code_bonus: float = 0.35
    house_number_bonus: float = 0.25
    municipality_bonus: float = 0.10
    top_k: int = 3
    score_precision: int = 4
    max_fallback_candidates: int = 4000
    stop_words: frozenset = frozenset()
    via_words: frozenset = frozenset()
    abbreviations: Tuple[Tuple[str, str], ...] = ()
    header_keywords: Tuple[str, ...] = ()
    header_scan_rows: int = 30
    column_letters: Tuple[Tuple[str, str], ...] = ()
    column_resolution: str = "letters"
    customer_name_columns: Tuple[str, ...] = ("INFO_1", "INFO_2", "INFO_3")
    customer_street_column: str = "STREET"
    customer_city_column: str = "CITY"
    customer_postal_column: str = "PostalCode"
    customer_id_column: str = "Customer"

    @property
    def column_map(self) -> Dict[str, str]:
        return dict(self.column_letters)

    @property
    def required_customer_columns(self) -> List[str]:
        return [
            self.customer_name_columns[0],
            self.customer_street_column,
            self.customer_city_column,
            self.customer_postal_column,
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Nested configuration dictionary, in the layout ``from_dict`` reads."""
        return {
            "normalization": {
                "stop_words": sorted(self.stop_words),
                "via_words": sorted(self.via_words),
                "abbreviations": [[pattern, repl] for pattern, repl in self.abbreviations],
            },
            "registry": {
                "column_letters": self.column_map,
                "header_keywords": list(self.header_keywords),
                "header_scan_rows": self.header_scan_rows,
                "column_resolution": self.column_resolution,
            },
            "customers": {
                "name_columns": list(self.customer_name_columns),
                "street_column": self.customer_street_column,
                "city_column": self.customer_city_column,
                "postal_column": self.customer_postal_column,
                "id_column": self.customer_id_column,
            },
            "blocking": {
                "max_fallback_candidates": self.max_fallback_candidates
            },
            "scoring": {
                "weights": {
                    "name": self.name_weight,
                    "street": self.street_weight
                },
                "bonuses": {
                    "postal_code": self.postal_code_bonus,
                    "house_number": self.house_number_bonus,
                    "municipality": self.municipality_bonus
                },
                "thresholds": self.thresholds.to_dict(),
                "top_k": self.top_k,
                "score_precision": self.score_precision
            }
        }

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "MatchConfig":
        """
        Build a MatchConfig from a (possibly partial) configuration dictionary.

        Args:
            config: Configuration dictionary, merged over the defaults

        Returns:
            MatchConfig instance

        Raises:
            ValueError: If the merged configuration is invalid
        """
        merged = merge_configs(get_default_match_config(), config or {})
        if not validate_match_config(merged):
            raise ValueError("Invalid matching configuration, see log for details")

        norm = merged["normalization"]
        registry = merged["registry"]
        customers = merged["customers"]
        scoring = merged["scoring"]

        return cls(
            thresholds=Thresholds(
                alta=float(scoring["thresholds"]["alta"]),
                baja=float(scoring["thresholds"]["baja"]),
            ),
            name_weight=float(scoring["weights"]["name"]),
            street_weight=float(scoring["weights"]["street"]),
            postal_code_bonus=float(scoring["bonuses"]["postal_code"]),
            house_number_bonus=float(scoring["bonuses"]["house_number"]),
            municipality_bonus=float(scoring["bonuses"]["municipality"]),
            top_k=int(scoring["top_k"]),
            score_precision=int(scoring["score_precision"]),
            max_fallback_candidates=int(merged["blocking"]["max_fallback_candidates"]),
            stop_words=frozenset(w.lower() for w in norm["stop_words"]),
            via_words=frozenset(w.lower() for w in norm["via_words"]),
            abbreviations=tuple((pattern, repl) for pattern, repl in norm["abbreviations"]),
            header_keywords=tuple(registry["header_keywords"]),
            header_scan_rows=int(registry["header_scan_rows"]),
            column_letters=tuple(registry["column_letters"].items()),
            column_resolution=registry["column_resolution"],
            customer_name_columns=tuple(customers["name_columns"]),
            customer_street_column=customers["street_column"],
            customer_city_column=customers["city_column"],
            customer_postal_column=customers["postal_column"],
            customer_id_column=customers["id_column"],
        )


def load_match_config(config_path: str = "config/registry_verify.yaml") -> MatchConfig:
    """
    Load matching configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        MatchConfig built from the file merged over the defaults
    """
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return MatchConfig.from_dict({})

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse configuration {config_path}: {e}")
        raise

    logger.info(f"Loaded matching configuration from {config_path}")
    return MatchConfig.from_dict(config)


def get_default_match_config() -> Dict[str, Any]:
    """
    Get default matching configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "normalization": {
            "stop_words": [
                "de", "del", "la", "el", "los", "las", "y", "en", "a", "un", "una",
                "unos", "unas", "por", "para", "al", "lo", "da", "do"
            ],
            "via_words": [
                "calle", "carrer", "avenida", "av", "avda", "paseo", "pso", "ps", "plaza",
                "carretera", "ctra", "partida", "ptda", "camino", "cno", "travesia",
                "tv", "ronda"
            ],
            # Order matters: "HOSP." must expand before "S." and "AVDA" before "AVD".
            "abbreviations": [
                [r"\bHOSP\.", "HOSPITAL "],
                [r"\bSTO\b", "SANTO"],
                [r"\bSTA\b", "SANTA"],
                [r"\bS\.", "SAN "],
                [r"\bCOR\.", "CORAZON "],
                [r"\bAV\.", "AVENIDA "],
                [r"\bAVDA\b", "AVENIDA"],
                [r"\bAVD\b", "AVENIDA"],
                [r"\bC/", "CALLE "],
                [r"\bCL\.", "CALLE "],
                [r"\bPº", "PASEO "],
                [r"\bPS\.", "PASEO "],
                [r"\bPSO\b", "PASEO"],
                [r"\bCTRA\b", "CARRETERA"],
                [r"\bPTDA\b", "PARTIDA"],
                [r"\bURB\.", "URBANIZACION "],
            ],
        },
        "registry": {
            "column_letters": {
                "name": "E",
                "via": "M",
                "municipality": "K",
                "postal_code": "O",
                "number": "N",
                "center_code": "C",
                "authorization_date": "Y",
                "service_offering": "AC",
            },
            "header_keywords": [
                "nombre", "centro", "municipio", "provincia", "comunidad",
                "postal", "direccion", "via", "numero"
            ],
            "header_scan_rows": 30,
            "column_resolution": "letters",
        },
        "customers": {
            "name_columns": ["INFO_1", "INFO_2", "INFO_3"],
            "street_column": "STREET",
            "city_column": "CITY",
            "postal_column": "PostalCode",
            "id_column": "Customer",
        },
        "blocking": {
            "max_fallback_candidates": 4000
        },
        "scoring": {
            "weights": {
                "name": 0.50,
                "street": 0.35
            },
            "bonuses": {
                "postal_code": 0.35,
                "house_number": 0.25,
                "municipality": 0.10
            },
            "thresholds": {
                "alta": 0.85,
                "baja": 0.65
            },
            "top_k": 3,
            "score_precision": 4
        }
    }


def validate_match_config(config: Dict[str, Any]) -> bool:
    """
    Validate matching configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["normalization", "registry", "customers", "blocking", "scoring"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    scoring = config["scoring"]
    thresholds = scoring.get("thresholds", {})
    alta = thresholds.get("alta")
    baja = thresholds.get("baja")
    if not all(isinstance(v, (int, float)) for v in (alta, baja)):
        logger.error("scoring.thresholds.alta and scoring.thresholds.baja must be numbers")
        return False
    if not 0 <= baja < alta <= 1:
        logger.error(f"Thresholds must satisfy 0 <= baja < alta <= 1 (got baja={baja}, alta={alta})")
        return False

    for section in ("weights", "bonuses"):
        for key, value in scoring.get(section, {}).items():
            if not isinstance(value, (int, float)) or value < 0:
                logger.error(f"scoring.{section}.{key} must be a non-negative number")
                return False

    if int(scoring.get("top_k", 0)) < 1:
        logger.error("scoring.top_k must be at least 1")
        return False

    registry = config["registry"]
    for key, letter in registry.get("column_letters", {}).items():
        if not isinstance(letter, str) or not letter.strip().isalpha():
            logger.error(f"registry.column_letters.{key} must be a column letter, got {letter!r}")
            return False

    if registry.get("column_resolution") not in ("letters", "auto"):
        logger.error("registry.column_resolution must be 'letters' or 'auto'")
        return False

    if int(config["blocking"].get("max_fallback_candidates", 0)) < 1:
        logger.error("blocking.max_fallback_candidates must be at least 1")
        return False

    if not config["customers"].get("name_columns"):
        logger.error("customers.name_columns must list at least one column")
        return False

    logger.debug("Configuration validation passed")
    return True


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def save_match_config(config: Dict[str, Any], config_path: str) -> bool:
    """
    Save matching configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2, allow_unicode=True, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False
