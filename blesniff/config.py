# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import os
import logging
import yaml
from .constants import DEFAULT_BAUDRATE
from .errors import ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

class SnifferConfig:
    # key: (type, default)
    fields = {
        'serial_port': (str, None),
        'baudrate': (int, DEFAULT_BAUDRATE),
        'retry_backoff': (float, 1.0),
        'poll_interval': (float, 0.1),
        'read_size': (int, 1024),
        'find_scan_rsp': (bool, False),
        'find_aux': (bool, False),
        'scan_coded': (bool, False),
        'temporary_key': (int, 0),
        'log_level': (str, None),
        'log_file': (str, None),
    }

    def __init__(self, **kwargs):
        for k, (_, default) in self.fields.items():
            setattr(self, k, default)
        self.update(kwargs)

    def update(self, values):
        for k, v in values.items():
            if k not in self.fields:
                logger.warning("Ignoring unknown config key '%s'", k)
                continue
            if v is None:
                continue
            ftype = self.fields[k][0]
            # ints are acceptable where floats are expected, bools are not
            if ftype is float and isinstance(v, int) and not isinstance(v, bool):
                v = float(v)
            if (ftype is int and isinstance(v, bool)) or not isinstance(v, ftype):
                raise ConfigError("Config key '%s' must be %s, got %r" % (k, ftype.__name__, v))
            setattr(self, k, v)
        self.validate()

    def validate(self):
        if self.baudrate <= 0:
            raise ConfigError("baudrate must be positive")
        if self.retry_backoff < 0 or self.poll_interval <= 0:
            raise ConfigError("retry_backoff must be >= 0 and poll_interval > 0")
        if self.read_size <= 0:
            raise ConfigError("read_size must be positive")
        if not (0 <= self.temporary_key <= 0xFF):
            raise ConfigError("temporary_key must fit in one byte")

    def as_dict(self):
        return {k: getattr(self, k) for k in self.fields}

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__,
                ", ".join(["%s=%r" % kv for kv in self.as_dict().items()]))

def load_config(config_path):
    """
    Load a YAML config file into a SnifferConfig.

    Scan options may sit at top level or under a 'scan' mapping.
    """
    try:
        with open(config_path, 'r') as stream:
            data = yaml.safe_load(stream)
    except OSError as e:
        raise ConfigError("Can't read config file %s: %s" % (config_path, e)) from e
    except yaml.YAMLError as e:
        logger.error("Error while loading config.", exc_info=True)
        raise ConfigError("Invalid YAML in %s" % config_path) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Config file %s must contain a mapping" % config_path)

    scan = data.pop('scan', None) or {}
    if not isinstance(scan, dict):
        raise ConfigError("'scan' must be a mapping")
    data.update(scan)

    cfg = SnifferConfig()
    cfg.update(data)
    logger.info("Loaded config from %s", config_path)
    return cfg

def setup_logging(cfg=None):
    # environment overrides the config file
    log_file = os.environ.get('BLESNIFF_LOG_FILE', cfg.log_file if cfg else None)
    default_level = 'DEBUG' if log_file else 'WARNING'
    if cfg and cfg.log_level:
        default_level = cfg.log_level
    log_level = os.environ.get('BLESNIFF_LOG_LEVEL', default_level).upper()

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(handlers=handlers,
                        level=log_level,
                        format=LOG_FORMAT,
                        datefmt=LOG_DATEFMT)
    return logging.getLogger('blesniff')
