"""
Configuration loader for the Daikin exporter
Loads and validates configuration from YAML files
"""

import yaml
import logging
import os
import sys
from typing import Dict, Any, Optional, Tuple
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation.
    With no path every setting takes its default.
    """
    config = {}

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

    config = _apply_defaults(config)
    _validate_config(config)
    config['polling']['hosts'] = _dedupe_hosts(config['polling']['hosts'])

    logger.info(f"Configuration loaded from {config_path or 'defaults'}")
    return config

def config_path_from_environment(argv=None) -> Optional[str]:
    """First CLI argument, else CONFIG_FILE, else None"""
    argv = sys.argv if argv is None else argv
    if len(argv) > 1:
        return argv[1]
    return os.environ.get('CONFIG_FILE')

def parse_bind_address(bind_address: str) -> Tuple[str, int]:
    """Split 'host:port' or '[v6]:port' into its parts"""
    if not isinstance(bind_address, str) or ':' not in bind_address:
        raise ValueError(f"Can't parse bind address {bind_address!r}")

    host, _, port = bind_address.rpartition(':')
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    if not host:
        raise ValueError(f"Can't parse bind address {bind_address!r}: missing host")

    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Can't parse bind address {bind_address!r}: bad port") from None

    if not 0 <= port_number <= 65535:
        raise ValueError(f"Can't parse bind address {bind_address!r}: port out of range")

    return host, port_number

def _validate_config(config: Dict) -> None:
    """Validate the merged configuration"""
    for section in ['exporter', 'discovery', 'polling', 'logging']:
        if not isinstance(config[section], dict):
            raise ValueError(f"Configuration section must be a mapping: {section}")

    parse_bind_address(config['exporter']['bind_address'])
    parse_bind_address(config['discovery']['bind_address'])

    positive = [
        ('discovery', 'major_interval_seconds'),
        ('discovery', 'minor_interval_seconds'),
        ('polling', 'refresh_interval_seconds'),
        ('polling', 'refresh_timeout_seconds'),
    ]
    for section, key in positive:
        value = config[section][key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"{section}.{key} must be a positive number, got {value!r}")

    hosts = config['polling']['hosts']
    if not isinstance(hosts, list) or not all(isinstance(h, str) and h.strip() for h in hosts):
        raise ValueError("polling.hosts must be a list of host names or addresses")

    level = str(config['logging']['level']).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown logging.level: {config['logging']['level']}")

    try:
        pytz.timezone(config['logging']['timezone'])
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown logging.timezone: {config['logging']['timezone']}") from None

def _dedupe_hosts(hosts):
    """Drop repeated static hosts, keeping the first occurrence"""
    unique = []
    for host in hosts:
        host = host.strip()
        if host in unique:
            logger.warning(f"Ignoring duplicate configured host {host}")
            continue
        unique.append(host)
    return unique

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""
    defaults = {
        'exporter': {
            'bind_address': '0.0.0.0:9150'
        },
        'discovery': {
            'enabled': True,
            'bind_address': '0.0.0.0:0',
            'major_interval_seconds': 300,
            'minor_interval_seconds': 0.2
        },
        # refresh_interval should be about twice the scrape interval
        'polling': {
            'hosts': [],
            'refresh_interval_seconds': 7.5,
            'refresh_timeout_seconds': 0.25
        },
        'logging': {
            'level': 'INFO',
            'timezone': 'UTC',
            'file': None,
            'console_output': True
        }
    }

    for section, section_defaults in defaults.items():
        if config.get(section) is None:
            config[section] = {}
        if not isinstance(config[section], dict):
            continue
        for key, default_value in section_defaults.items():
            if config[section].get(key) is None:
                config[section][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS UTC
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, log_config.get('timezone', 'UTC'))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={log_config.get('timezone', 'UTC')}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")
