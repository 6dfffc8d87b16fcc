import logging
import os
import os.path
from configparser import RawConfigParser
from typing import Dict, List, Optional

logging.basicConfig(level=logging.INFO)
base_logger = logging.getLogger("ambit.config")


# Possible paths for base configuration files
CONFIG_FILES = {
    "power": ["/etc/ambit/power.conf", "/usr/etc/ambit/power.conf"],
    "logging": ["/etc/ambit/logging.conf", "/usr/etc/ambit/logging.conf"],
}

# Paths to directories in which options can be overriden using configuration
# snippets
CONFIG_SNIPPETS_DIRS = {
    "power": ["/usr/etc/ambit/power.conf.d", "/etc/ambit/power.conf.d"],
    "logging": ["/usr/etc/ambit/logging.conf.d", "/etc/ambit/logging.conf.d"],
}

CONFIG_ENV = {
    "power": "",
    "logging": "",
}

# Add files from environment variables, if set
if "AMBIT_POWER_CONFIG" in os.environ:
    CONFIG_ENV["power"] = os.environ["AMBIT_POWER_CONFIG"]
if "AMBIT_LOGGING_CONFIG" in os.environ:
    CONFIG_ENV["logging"] = os.environ["AMBIT_LOGGING_CONFIG"]

# Single instance
_config: Optional[Dict[str, RawConfigParser]] = None


def _check_file_permissions(component: str, file_path: str) -> bool:
    """Check if a config file exists and is readable.

    Args:
        component: The component name (e.g., 'power', 'logging')
        file_path: Path to the config file

    Returns:
        True if file is readable, False otherwise
    """
    if not os.path.exists(file_path):
        return False

    if not os.access(file_path, os.R_OK):
        base_logger.error(
            "Config file %s for component %s exists but is not readable, its options will be ignored",
            file_path,
            component,
        )
        return False

    return True


def _validate_config_files(component: str, file_paths: List[str], files_read: List[str]) -> None:
    """Log every config file which exists but could not be parsed.

    Args:
        component: The component name (e.g., 'power', 'logging')
        file_paths: List of file paths that were attempted to be read
        files_read: List of files that ConfigParser successfully read
    """
    for file_path in file_paths:
        if not _check_file_permissions(component, file_path):
            continue

        if file_path not in files_read:
            base_logger.error(
                "Config file %s for component %s exists but failed to parse, check it for duplicate options "
                "or invalid INI syntax",
                file_path,
                component,
            )


def get_config(component: str) -> RawConfigParser:
    """Find the configuration file to use for the given component and apply the
    overrides defined by configuration snippets.

    The processing follows the steps below:

    * If a configuration path is set through the AMBIT_<COMPONENT>_CONFIG
    environment variable, use the configuration from this file and ignore
    configuration from other files.
    * Otherwise, use the first base file found among CONFIG_FILES[component]
    (/etc/ambit takes priority over /usr/etc/ambit).
    * Apply overrides from the files in the snippet directories of the
    component, in lexicographic order.

    A component without any configuration file yields an empty configuration,
    so that every option falls back to its default.
    """

    global _config

    if not _config:
        _config = {}

    if not component:
        raise Exception("No component provided to get_config")

    if component not in _config:
        # Use RawConfigParser, so we can also use it as the logging config
        _config[component] = RawConfigParser()

        if not CONFIG_ENV or not isinstance(CONFIG_ENV, dict):
            raise Exception("Invalid CONFIG_ENV")

        if not component in CONFIG_ENV:
            raise Exception(f"Invalid component '{component}'")

        if CONFIG_ENV[component]:
            if os.path.isfile(CONFIG_ENV[component]):
                config_files = _config[component].read(CONFIG_ENV[component])
                base_logger.info("Reading configuration from %s", config_files)
                return _config[component]

            base_logger.info(
                "Configuration file %s for %s set through environment variable not found, falling back to installed configuration",
                CONFIG_ENV[component],
                component,
            )

        if not CONFIG_FILES or not isinstance(CONFIG_FILES, dict):
            raise Exception("Invalid CONFIG_FILES")

        if not component in CONFIG_FILES:
            raise Exception(f"Invalid component {component}")

        for c in CONFIG_FILES[component]:
            config_file = _config[component].read(c)
            _validate_config_files(component, [c], config_file)

            if config_file:
                base_logger.info("Reading configuration from %s", config_file)

                for d in (x for x in CONFIG_SNIPPETS_DIRS.get(component) or [] if os.path.exists(x)):
                    snippets = sorted(
                        [os.path.join(d, f) for f in os.listdir(d) if f and os.path.isfile(os.path.join(d, f))]
                    )
                    applied_snippets = _config[component].read(snippets)
                    _validate_config_files(component, snippets, applied_snippets)

                    if applied_snippets:
                        base_logger.info("Applied configuration snippets from %s", d)

                break

    return _config[component]


def _get_env(component: str, option: str, section: Optional[str]) -> Optional[str]:
    opt_section = f"_{section.upper()}" if section else ""
    env_name = f"AMBIT_{component.upper()}{opt_section}_{option.upper()}"
    env_value = os.environ.get(env_name, None)
    if env_value is not None:
        log_msg = f'option "{option}" on section {section} for component {component}.conf was overriden by environment variable {env_name}'
        base_logger.info(log_msg.replace("on section None ", ""))

    return env_value


def get(component: str, option: str, section: Optional[str] = None, fallback: str = "") -> str:
    env_value = _get_env(component, option, section)
    if not section:
        section = component

    if env_value is not None:
        return env_value.strip('" ')

    return get_config(component).get(section, option, fallback=fallback).strip('" ')


def getboolean(component: str, option: str, section: Optional[str] = None, fallback: bool = False) -> bool:
    env_value = _get_env(component, option, section)
    if not section:
        section = component

    if env_value is not None:
        env_value_lower = env_value.lower().strip('" ')
        if env_value_lower not in RawConfigParser.BOOLEAN_STATES:
            return fallback
        return RawConfigParser.BOOLEAN_STATES[env_value_lower]

    return get_config(component).getboolean(section, option, fallback=fallback)
