from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional
import yaml


@dataclass
class AiSettings:
    """Which analysis stages run for each image"""
    run_classifier: bool = True
    run_captioner: bool = True
    run_object_detection: bool = False
    run_nsfw: bool = True
    nsfw_threshold: float = 0.7
    run_face_detection: bool = True
    run_ocr: bool = True
    run_duplicate_detection: bool = True
    run_quality_analysis: bool = True
    run_color_palette: bool = True


@dataclass
class OrganizeOptions:
    """How analysis results are turned into organization"""
    auto_rename: bool = True
    add_tags: bool = True
    find_duplicates: bool = True
    flag_low_quality: bool = False
    quality_threshold: float = 0.7


@dataclass
class AnalysisLimits:
    """Working sizes and constants for the pixel algorithms"""
    quality_max_dimension: int = 400
    hash_size: int = 32
    palette_size: int = 150
    palette_colors: int = 5
    palette_iterations: int = 20
    alpha_threshold: int = 128
    palette_seed: int = 0


@dataclass
class DuplicateDetectionConfig:
    """Configuration for duplicate detection"""
    similarity_threshold: float = 0.85
    group_similarity: float = 0.9


@dataclass
class SystemConfig:
    """System-wide configuration"""
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    ai: AiSettings = field(default_factory=AiSettings)
    organize: OrganizeOptions = field(default_factory=OrganizeOptions)
    limits: AnalysisLimits = field(default_factory=AnalysisLimits)
    duplicate_detection: DuplicateDetectionConfig = field(
        default_factory=DuplicateDetectionConfig
    )

    def save(self, path: str = "config.yaml"):
        """Save configuration to YAML file"""
        config_dict = asdict(self)

        with open(path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, path: str = "config.yaml") -> 'SystemConfig':
        """Load configuration from YAML file"""
        if not Path(path).exists():
            return cls()  # Return default config

        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        config = cls()

        # System settings
        config.log_level = config_dict.get('log_level', config.log_level)
        config.log_dir = config_dict.get('log_dir', config.log_dir)

        # Sections
        config.ai = _section(AiSettings, config_dict.get('ai'))
        config.organize = _section(OrganizeOptions, config_dict.get('organize'))
        config.limits = _section(AnalysisLimits, config_dict.get('limits'))
        config.duplicate_detection = _section(
            DuplicateDetectionConfig, config_dict.get('duplicate_detection')
        )

        return config


def _section(section_cls, values: Optional[dict]):
    """Build a config section from a mapping, ignoring unknown keys"""
    if not values:
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in values.items() if k in known})
