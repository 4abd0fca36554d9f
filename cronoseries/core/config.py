'''
Configuration management for CronoSeries.

Settings are layered:
1. Defaults built into the dataclass sections below
2. A user configuration file (JSON), if present
3. Environment variables with the ``CRONO_`` prefix
4. Runtime modifications through :func:`set_config`

Environment variables are named ``CRONO_<SECTION>_<OPTION>``, for example
``CRONO_ESTIMATION_N_GLOBAL_SAMPLES=500`` or ``CRONO_LOGGING_LOG_LEVEL=DEBUG``.

The estimation section supplies the default budgets of
:func:`cronoseries.core.estimation.fit_by_mle`; the numerical section
controls the NaN guard of the Nelder-Mead reflection step and the Student-t
scale iteration.
'''

import os
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger("cronoseries.core.config")

CONFIG_ENV_PREFIX = "CRONO_"
DEFAULT_CONFIG_FILENAME = "cronoseries_config.json"
USER_CONFIG_DIR_ENV = "CRONO_CONFIG_DIR"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    CORE = "core"
    ESTIMATION = "estimation"
    NUMERICAL = "numerical"
    LOGGING = "logging"


@dataclass
class CoreConfig:
    """
    Core configuration settings.

    Attributes:
        user_config_dir: Directory holding the user configuration file
        random_seed: Seed used by ``simulate`` when the caller passes none
    """
    user_config_dir: Path = field(default_factory=lambda: Path.home() / ".cronoseries")
    random_seed: Optional[int] = None


@dataclass
class EstimationConfig:
    """
    Default budgets for the two-phase maximum likelihood fit.

    Attributes:
        n_global_samples: Number of Halton points evaluated in the global phase
        n_local_iterations: Number of Nelder-Mead iterations in the local phase
        penalty_factor: Weight of the drawdown consistency penalty
        parallel_global_search: Evaluate global candidates in a thread pool
        max_workers: Thread pool size (None lets the executor decide)
    """
    n_global_samples: int = 200
    n_local_iterations: int = 100
    penalty_factor: float = 0.0
    parallel_global_search: bool = False
    max_workers: Optional[int] = None


@dataclass
class NumericalConfig:
    """
    Numerical safeguards.

    Attributes:
        nan_step_shrink: Factor applied to the reflection step while it lands on NaN
        max_nan_retries: Maximum number of shrunk reflection attempts per iteration
        student_t_sigma_iterations: Fixed-point iterations of the Student-t scale estimate
    """
    nan_step_shrink: float = 0.8
    max_nan_retries: int = 200
    student_t_sigma_iterations: int = 20


@dataclass
class LoggingConfig:
    """
    Logging configuration settings.

    Attributes:
        log_level: Default logging level
        log_file: Path to log file (None for no file logging)
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to console
        file_logging: Whether to log to file
    """
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True
    file_logging: bool = False


@dataclass
class CronoConfig:
    """
    Complete configuration, one attribute per section.
    """
    core: CoreConfig = field(default_factory=CoreConfig)
    estimation: EstimationConfig = field(default_factory=EstimationConfig)
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _coerce(value: str, current: Any) -> Any:
    """Convert a string from the environment to the type of ``current``."""
    if isinstance(current, bool):
        return value.lower() in ('true', 'yes', '1', 'y')
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, Path):
        return Path(value)
    if current is None:
        # Optional options: numbers when they parse, paths or strings otherwise
        if value.lower() in ('none', ''):
            return None
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return value
    return value


class ConfigManager:
    """
    Configuration manager.

    Attributes:
        _config: The current configuration object
        _initialized: Whether the configuration manager has been initialized
        _config_file: Path to the user configuration file
    """

    def __init__(self):
        self._config = CronoConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Initialize the configuration manager.

        This method:
        1. Resolves the user configuration directory
        2. Loads user configuration from file if available
        3. Applies environment variable overrides
        4. Validates the configuration
        5. Sets up logging based on configuration
        """
        if self._initialized:
            return

        self._resolve_user_config_dir()
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _resolve_user_config_dir(self) -> None:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            self._config.core.user_config_dir = Path(env_config_dir)
        self._config_file = self._config.core.user_config_dir / DEFAULT_CONFIG_FILENAME

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX) or env_var == USER_CONFIG_DIR_ENV:
                continue

            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts
            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                continue

            try:
                typed_value = _coerce(value, getattr(section_obj, option))
            except ValueError as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e}")
                continue

            setattr(section_obj, option, typed_value)
            logger.debug(f"Applied environment override: {env_var}={value}")

    def _setup_logging(self) -> None:
        package_logger = logging.getLogger("cronoseries")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level))

        formatter = logging.Formatter(
            fmt=self._config.logging.log_format,
            datefmt=self._config.logging.log_date_format
        )

        if self._config.logging.console_logging:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

        if self._config.logging.file_logging and self._config.logging.log_file:
            try:
                log_file = Path(self._config.logging.log_file)
                log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_file)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)
            except OSError as e:
                logger.warning(f"Failed to set up file logging: {e}")

    def _validate_config(self) -> None:
        """
        Validate option values, raising ConfigurationError on the first violation.
        """
        est = self._config.estimation
        if est.n_global_samples < 1:
            raise ConfigurationError("n_global_samples must be positive",
                                     config_key="estimation.n_global_samples",
                                     config_value=est.n_global_samples)
        if est.n_local_iterations < 0:
            raise ConfigurationError("n_local_iterations must be non-negative",
                                     config_key="estimation.n_local_iterations",
                                     config_value=est.n_local_iterations)
        if est.penalty_factor < 0:
            raise ConfigurationError("penalty_factor must be non-negative",
                                     config_key="estimation.penalty_factor",
                                     config_value=est.penalty_factor)
        if est.max_workers is not None and est.max_workers < 1:
            raise ConfigurationError("max_workers must be positive or None",
                                     config_key="estimation.max_workers",
                                     config_value=est.max_workers)

        num = self._config.numerical
        if not 0.0 < num.nan_step_shrink < 1.0:
            raise ConfigurationError("nan_step_shrink must lie strictly between 0 and 1",
                                     config_key="numerical.nan_step_shrink",
                                     config_value=num.nan_step_shrink)
        if num.max_nan_retries < 0:
            raise ConfigurationError("max_nan_retries must be non-negative",
                                     config_key="numerical.max_nan_retries",
                                     config_value=num.max_nan_retries)
        if num.student_t_sigma_iterations < 1:
            raise ConfigurationError("student_t_sigma_iterations must be positive",
                                     config_key="numerical.student_t_sigma_iterations",
                                     config_value=num.student_t_sigma_iterations)

        level = str(self._config.logging.log_level).upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self._config.logging.log_level}",
                                     config_key="logging.log_level",
                                     config_value=self._config.logging.log_level,
                                     details=f"Valid levels: {', '.join(_LOG_LEVELS)}")
        self._config.logging.log_level = level

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section_name, section_dict in config_dict.items():
            if not hasattr(self._config, section_name):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue

            section = getattr(self._config, section_name)

            for option_name, option_value in section_dict.items():
                if not hasattr(section, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue

                if isinstance(getattr(section, option_name), Path) and isinstance(option_value, str):
                    option_value = Path(option_value)

                setattr(section, option_name, option_value)

    def save_user_config(self) -> None:
        """
        Save the current configuration to the user configuration file.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        if self._config_file is None:
            self._resolve_user_config_dir()

        try:
            self._config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_file, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            raise ConfigurationError(
                "Failed to save user configuration",
                config_key=str(self._config_file),
                details=str(e)
            )

        logger.debug(f"Saved user configuration to {self._config_file}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a JSON-serializable dictionary.

        Returns:
            Dictionary representation of the configuration
        """
        result = {}
        for section_enum in ConfigSection:
            section = getattr(self._config, section_enum.value)
            section_dict = {}
            for field_name in section.__dataclass_fields__:
                value = getattr(section, field_name)
                if isinstance(value, Path):
                    value = str(value)
                section_dict[field_name] = value
            result[section_enum.value] = section_dict
        return result

    def get(self, section: str, option: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            default: Default value if the option is not found

        Returns:
            The configuration value, or the default if not found
        """
        if not hasattr(self._config, section):
            return default

        section_obj = getattr(self._config, section)

        if not hasattr(section_obj, option):
            return default

        return getattr(section_obj, option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            value: The value to set

        Raises:
            ConfigurationError: If the section or option is not found, or the
                resulting configuration is invalid
        """
        if not hasattr(self._config, section):
            raise ConfigurationError(f"Unknown configuration section: {section}",
                                     config_key=f"{section}.{option}",
                                     config_value=value)

        section_obj = getattr(self._config, section)

        if not hasattr(section_obj, option):
            raise ConfigurationError(f"Unknown configuration option: {section}.{option}",
                                     config_key=f"{section}.{option}",
                                     config_value=value)

        current_value = getattr(section_obj, option)
        if isinstance(value, str) and not isinstance(current_value, str):
            try:
                value = _coerce(value, current_value)
            except ValueError as e:
                raise ConfigurationError(f"Failed to set configuration option: {section}.{option}",
                                         config_key=f"{section}.{option}",
                                         config_value=value,
                                         details=str(e))

        setattr(section_obj, option, value)
        try:
            self._validate_config()
        except ConfigurationError:
            setattr(section_obj, option, current_value)
            raise

        self._modified_keys.add(f"{section}.{option}")
        if section == ConfigSection.LOGGING.value:
            self._setup_logging()

        logger.debug(f"Set configuration option: {section}.{option}={value}")

    def reset(self, section: Optional[str] = None, option: Optional[str] = None) -> None:
        """
        Reset configuration to default values.

        Args:
            section: The configuration section to reset, or None to reset all
            option: The configuration option to reset, or None to reset the entire section

        Raises:
            ConfigurationError: If the section or option is not found
        """
        if section is None:
            self._config = CronoConfig()
            self._modified_keys.clear()
            self._resolve_user_config_dir()
            self._setup_logging()
            logger.debug("Reset all configuration to defaults")
            return

        if not hasattr(self._config, section):
            raise ConfigurationError(f"Unknown configuration section: {section}",
                                     config_key=section)

        default_config = CronoConfig()
        if option is None:
            setattr(self._config, section, getattr(default_config, section))
            self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
        else:
            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                raise ConfigurationError(f"Unknown configuration option: {section}.{option}",
                                         config_key=f"{section}.{option}")
            setattr(section_obj, option, getattr(getattr(default_config, section), option))
            self._modified_keys.discard(f"{section}.{option}")

        if section == ConfigSection.LOGGING.value:
            self._setup_logging()
        logger.debug(f"Reset configuration: {section}{'.' + option if option else ''}")

    def get_modified_options(self) -> List[str]:
        """Return the ``section.option`` keys changed at runtime."""
        return sorted(self._modified_keys)

    def get_section(self, section: str) -> Any:
        """
        Get a configuration section object.

        Raises:
            ConfigurationError: If the section is not found
        """
        if not hasattr(self._config, section):
            raise ConfigurationError(f"Unknown configuration section: {section}",
                                     config_key=section)
        return getattr(self._config, section)

    def get_config_file(self) -> Optional[Path]:
        """Return the path of the user configuration file."""
        return self._config_file


_config_manager = ConfigManager()


def initialize_config() -> None:
    """
    Initialize the configuration system.
    """
    _config_manager.initialize()


def get_config_manager() -> ConfigManager:
    """
    Get the configuration manager instance.
    """
    if not _config_manager._initialized:
        initialize_config()

    return _config_manager


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found

    Returns:
        The configuration value, or the default if not found
    """
    return get_config_manager().get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    get_config_manager().set(section, option, value)


def reset_config(section: Optional[str] = None, option: Optional[str] = None) -> None:
    """
    Reset configuration to default values.
    """
    get_config_manager().reset(section, option)


def save_config() -> None:
    """
    Save the current configuration to the user configuration file.
    """
    get_config_manager().save_user_config()


def get_core_config() -> CoreConfig:
    """Get the core configuration section."""
    return get_config_manager().get_section("core")


def get_estimation_config() -> EstimationConfig:
    """Get the estimation configuration section."""
    return get_config_manager().get_section("estimation")


def get_numerical_config() -> NumericalConfig:
    """Get the numerical configuration section."""
    return get_config_manager().get_section("numerical")


def get_logging_config() -> LoggingConfig:
    """Get the logging configuration section."""
    return get_config_manager().get_section("logging")
