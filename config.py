#!/usr/bin/env python3
"""
Configuration Management for Keyboard Layout Generation

This module provides structured configuration loading, validation,
and management for layout generation. It handles the frequency data
location, keyboard geometry, generation alphabet and pins, and the
scoring weights.

Features:
- YAML-based configuration with comprehensive validation
- Pins given as a 30-character mask ('x' marks a pinned key)
- All scoring weights with defaults, overridable one by one
- Clear error messages for configuration issues

"""

import yaml
import os
from typing import FrozenSet, List, Optional
from dataclasses import dataclass, field, asdict, fields

from keyboard import N_POSITIONS, KeyboardType, resolve_keyboard_type

DEFAULT_CHARACTERS = "abcdefghijklmnopqrstuvwxyz',.;"
DEFAULT_TRIGRAM_PRECISION = 100000


@dataclass(frozen=True)
class Weights:
    """Scoring coefficients. Immutable once loaded."""

    # Trigram bonuses
    alternate: float = 0.7
    alternate_sfs: float = 0.35
    inroll: float = 1.6
    outroll: float = 1.3
    onehand: float = 0.8

    # Trigram penalties
    redirect: float = 1.5
    redirect_sfs: float = 2.75
    bad_redirect: float = 4.0
    bad_redirect_sfs: float = 6.0

    # Same-finger skipgram ratios (distance 1, 2 and 3)
    sfs_ratio: float = 0.12
    sfs2_ratio: float = 0.10
    sfs3_ratio: float = 0.08

    # Geometry bigram penalties
    scissors: float = 5.0
    lateral_stretch: float = 2.0
    pinky_ring: float = 0.0

    # Finger load and travel
    finger_speed: float = 8.0
    heatmap: float = 0.85
    lateral_penalty: float = 1.3
    overuse_penalty: float = 2.5
    # Target usage share for pinky, ring, middle, index
    finger_bias: List[float] = field(default_factory=lambda: [9.0, 16.0, 19.5, 18.0])

    @property
    def skipgram_multipliers(self):
        """Effective multipliers for same-finger skipgrams at distance 1, 2 and 3."""
        return (self.sfs_ratio,
                (self.sfs2_ratio * 6.0) ** 2,
                (self.sfs3_ratio * 6.0) ** 3)

    @property
    def normalized_finger_bias(self) -> List[float]:
        total = sum(self.finger_bias)
        return [b / total for b in self.finger_bias]

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> 'Weights':
        """
        Build weights from a (possibly partial) mapping; missing keys keep defaults.

        Raises:
            ValueError: On unknown keys or malformed values
        """
        raw = dict(raw or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown weights: {unknown}")

        values = {}
        for name, value in raw.items():
            if name == 'finger_bias':
                try:
                    bias = [float(v) for v in value]
                except (TypeError, ValueError):
                    raise ValueError(f"finger_bias must be a list of 4 numbers, got {value!r}")
                if len(bias) != 4:
                    raise ValueError(f"finger_bias must have 4 entries (pinky, ring, middle, index), got {len(bias)}")
                values[name] = bias
            else:
                try:
                    values[name] = float(value)
                except (TypeError, ValueError):
                    raise ValueError(f"Weight '{name}' must be a number, got {value!r}")
        return cls(**values)


@dataclass
class PathConfig:
    """File paths for input and output."""
    language_data_folder: str = "input/english"
    layout_results_folder: str = "output/layouts"


@dataclass
class InfoConfig:
    """Corpus and keyboard geometry selection."""
    language: str = "english"
    keyboard_type: str = "ansi angle"
    trigram_precision: int = DEFAULT_TRIGRAM_PRECISION

    @property
    def keyboard(self) -> KeyboardType:
        return resolve_keyboard_type(self.keyboard_type)


@dataclass
class GenerationConfig:
    """Generation alphabet, pins and restart settings."""
    characters: str = DEFAULT_CHARACTERS
    pins: str = ""
    n_layouts: int = 100
    processes: Optional[int] = None
    seed: Optional[int] = None
    show_progress_bar: bool = True

    @property
    def pinned_positions(self) -> FrozenSet[int]:
        return parse_pins(self.pins)


@dataclass
class VisualizationConfig:
    """Visualization and display settings."""
    print_keyboard: bool = True
    verbose_output: bool = False
    top_n: int = 10


@dataclass
class Config:
    """Complete configuration container."""
    paths: PathConfig
    info: InfoConfig
    generation: GenerationConfig
    weights: Weights
    visualization: VisualizationConfig

    # Internal tracking
    _config_path: str = "config.yaml"


def parse_pins(pins: str) -> FrozenSet[int]:
    """
    Parse a pin mask into pinned positions.

    The mask is read row by row over the 3x10 matrix, whitespace ignored;
    'x' (either case) pins the key at that position, any other character
    leaves it free. A blank mask pins nothing.

    Raises:
        ValueError: If the mask is longer than 30 keys
    """
    mask = ''.join(pins.split())
    if len(mask) > N_POSITIONS:
        raise ValueError(f"Pin mask has {len(mask)} keys, at most {N_POSITIONS} allowed: '{pins}'")
    return frozenset(i for i, c in enumerate(mask) if c.lower() == 'x')


def load_config(config_path: str = "config.yaml") -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML configuration: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    config = config_from_dict(raw_config, config_path)
    validate_config(config)
    return config


def config_from_dict(raw_config: dict, config_path: str = "config.yaml") -> Config:
    """Build a Config from already-parsed YAML content (without validation)."""
    required_sections = ['paths']
    missing_sections = [section for section in required_sections if section not in raw_config]
    if missing_sections:
        raise ValueError(f"Missing required configuration sections: {missing_sections}")

    try:
        paths = PathConfig(**raw_config['paths'])
    except TypeError as e:
        raise ValueError(f"Error parsing paths configuration: {e}")

    # Optional sections with defaults
    try:
        info = InfoConfig(**(raw_config.get('info') or {}))
    except TypeError as e:
        raise ValueError(f"Error parsing info configuration: {e}")

    try:
        generation = GenerationConfig(**(raw_config.get('generation') or {}))
    except TypeError as e:
        raise ValueError(f"Error parsing generation configuration: {e}")

    weights = Weights.from_dict(raw_config.get('weights'))

    try:
        visualization = VisualizationConfig(**(raw_config.get('visualization') or {}))
    except TypeError as e:
        raise ValueError(f"Error parsing visualization configuration: {e}")

    return Config(paths, info, generation, weights, visualization, config_path)


def validate_config(config: Config) -> None:
    """
    Perform comprehensive validation of configuration.

    Args:
        config: Configuration object to validate

    Raises:
        ValueError: If any validation check fails
    """
    gen = config.generation

    # Geometry must resolve
    resolve_keyboard_type(config.info.keyboard_type)

    if int(config.info.trigram_precision) <= 0:
        raise ValueError(f"trigram_precision must be positive, got {config.info.trigram_precision}")

    # The generation alphabet fills every key exactly once
    if len(gen.characters) != N_POSITIONS:
        raise ValueError(
            f"characters must have exactly {N_POSITIONS} symbols, "
            f"got {len(gen.characters)}: '{gen.characters}'"
        )
    if len(set(gen.characters)) != len(gen.characters):
        duplicates = sorted(c for c in set(gen.characters) if gen.characters.count(c) > 1)
        raise ValueError(f"Duplicate characters in characters: '{gen.characters}' (duplicates: {duplicates})")

    parse_pins(gen.pins)

    if gen.n_layouts <= 0:
        raise ValueError("n_layouts must be positive")
    if gen.processes is not None and gen.processes <= 0:
        raise ValueError("processes must be positive")

    w = config.weights
    if w.lateral_penalty < 0 or w.heatmap < 0 or w.finger_speed < 0 or w.overuse_penalty < 0:
        raise ValueError("lateral_penalty, heatmap, finger_speed and overuse_penalty must be non-negative")
    if any(b < 0 for b in w.finger_bias) or sum(w.finger_bias) <= 0:
        raise ValueError(f"finger_bias must be non-negative with a positive sum, got {w.finger_bias}")


def print_config_summary(config: Config) -> None:
    """Print human-readable configuration summary."""
    gen = config.generation

    print(f"\nConfiguration Summary:")
    print(f"  Config file: {config._config_path}")
    print(f"  Language: {config.info.language} ({config.paths.language_data_folder})")
    print(f"  Keyboard type: {config.info.keyboard.value}")
    print(f"  Trigram precision: {config.info.trigram_precision}")
    print(f"  Characters ({len(gen.characters)}): {gen.characters}")

    if gen.pinned_positions:
        print(f"  Pinned positions ({len(gen.pinned_positions)}): {sorted(gen.pinned_positions)}")

    processes = gen.processes if gen.processes is not None else "auto"
    print(f"  Generation: n_layouts={gen.n_layouts}, processes={processes}, seed={gen.seed}")
    print(f"  Visualization: keyboard={config.visualization.print_keyboard}, verbose={config.visualization.verbose_output}")


def create_default_config(output_path: str = "config.yaml") -> None:
    """
    Create a default configuration file with common settings.

    Args:
        output_path: Path where to save the default config
    """
    default_config = {
        'paths': asdict(PathConfig()),
        'info': asdict(InfoConfig()),
        'generation': asdict(GenerationConfig()),
        'weights': asdict(Weights()),
        'visualization': asdict(VisualizationConfig()),
    }

    with open(output_path, 'w') as f:
        yaml.dump(default_config, f, default_flow_style=False, indent=2, sort_keys=False)

    print(f"Default configuration saved to: {output_path}")


if __name__ == "__main__":
    import sys

    path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    try:
        if not os.path.exists(path):
            print(f"No configuration at {path}, writing defaults...")
            create_default_config(path)
        config = load_config(path)
        print_config_summary(config)
        print(f"\n✅ {path} is valid")
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error in {path}: {e}")
        sys.exit(1)
