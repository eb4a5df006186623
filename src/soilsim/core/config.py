"""
Configuration system with validation and environment awareness.
Based on Pydantic Settings for robust configuration management.

Settings are never held in a module-level singleton: callers build a
config (from the environment or a YAML file) and hand it to the
components that need it.
"""
import logging
from pathlib import Path
from typing import Literal, Optional, Union

import numpy as np
import yaml
from pydantic import Field, ConfigDict, model_validator
from pydantic_settings import BaseSettings

from soilsim.core.constants import FTCS_STABILITY_LIMIT, ROOT_FINDER_DEFAULTS

# Name of the handler configure_logging attaches to the package logger
LOG_HANDLER_NAME = "soilsim"


class RootFinderSettings(BaseSettings):
    """Configuration for the implicit equation root finder"""

    method: Literal["newton", "brentq"] = Field(
        "newton", description="Safeguarded Newton/bisection or scipy brentq"
    )
    xtol: float = Field(ROOT_FINDER_DEFAULTS["xtol"], gt=0, description="Absolute tolerance on the root")
    rtol: float = Field(ROOT_FINDER_DEFAULTS["rtol"], gt=0, description="Relative tolerance on the root")
    max_iterations: int = Field(
        int(ROOT_FINDER_DEFAULTS["max_iterations"]), gt=0,
        description="Iteration budget before failing"
    )
    max_bracket_expansions: int = Field(
        int(ROOT_FINDER_DEFAULTS["max_bracket_expansions"]), gt=0,
        description="Budget for growing the upper bracket"
    )
    bracket_growth: float = Field(ROOT_FINDER_DEFAULTS["bracket_growth"], gt=1)

    model_config = ConfigDict(env_prefix="SOILSIM_SOLVER_", case_sensitive=False)

    @model_validator(mode="after")
    def validate_brentq_tolerance(self):
        """scipy refuses relative tolerances below 4 machine epsilons"""
        if self.method == "brentq" and self.rtol < 4 * np.finfo(float).eps:
            raise ValueError("brentq requires rtol >= 4 * machine epsilon")
        return self


class HeatSettings(BaseSettings):
    """Configuration for the explicit heat conduction scheme"""

    stability_limit: float = Field(
        FTCS_STABILITY_LIMIT, gt=0,
        description="Stability factor above which a run is flagged"
    )

    model_config = ConfigDict(env_prefix="SOILSIM_HEAT_", case_sensitive=False)


class BatchSettings(BaseSettings):
    """Configuration for parallel scenario runs"""

    max_workers: int = Field(4, gt=0, description="Worker threads for independent scenarios")
    timeout_seconds: float = Field(300.0, gt=0, description="Wall-clock limit for one batch; unfinished scenarios fail")

    model_config = ConfigDict(env_prefix="SOILSIM_BATCH_", case_sensitive=False)


class LoggingSettings(BaseSettings):
    """Configuration for logging"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    model_config = ConfigDict(env_prefix="SOILSIM_LOG_", case_sensitive=False)


class SoilSimConfig(BaseSettings):
    """Main configuration for soilsim"""

    project_name: str = "soilsim"

    # Component configurations
    solver: RootFinderSettings = Field(default_factory=RootFinderSettings)
    heat: HeatSettings = Field(default_factory=HeatSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    log: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = ConfigDict(
        env_prefix="SOILSIM_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "SoilSimConfig":
        """Load configuration from YAML file"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    def to_yaml(self, yaml_path: Union[str, Path]):
        """Save configuration to YAML file"""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def load_config(config_path: Optional[Union[str, Path]] = None) -> SoilSimConfig:
    """Build a fresh configuration from YAML when given, else from the environment"""
    if config_path is not None:
        return SoilSimConfig.from_yaml(config_path)
    return SoilSimConfig()


def configure_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """Apply level and format to the package logger"""
    settings = settings or LoggingSettings()
    logger = logging.getLogger("soilsim")
    logger.setLevel(settings.level)

    if not any(h.get_name() == LOG_HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(LOG_HANDLER_NAME)
        logger.addHandler(handler)

    for handler in logger.handlers:
        if handler.get_name() == LOG_HANDLER_NAME:
            handler.setFormatter(logging.Formatter(settings.format))

    return logger
