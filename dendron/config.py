"""Process-wide dendron settings: config file loading with fallbacks, global mold and salt tables."""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple

from dendron.core.naming import cobralize, llamalize

ConfigResult = Tuple[dict, bool]

DEFAULT_CONFIG = MappingProxyType({
    'configVersion': '1.0',
    # Engine name used when neither option nor blueprint supplies one
    'fallbackName': 'document',
    # Raise fatal diagnostics that were not silenced (development aid)
    'strictDiagnostics': False,
    # Default salts by engine name
    'salts': {},
    'logging': {
        'level': 'INFO',
        'console': True,
        'logDir': None
    }
})

_lock = threading.Lock()
_settings: Dict[str, Any] = copy.deepcopy(dict(DEFAULT_CONFIG))
_molds: Dict[str, Any] = {}
_salts: Dict[str, str] = {}


def _validateConfig(config: dict) -> None:
    if not isinstance(config, dict):
        raise ValueError('dendron config is not a JSON object')
    if not isinstance(config.get('salts', {}), dict):
        raise ValueError("'salts' must be an object of engine name -> salt")
    for name, salt in config.get('salts', {}).items():
        if not isinstance(salt, str):
            raise ValueError(f"salt for '{name}' is not a string")
    if not isinstance(config.get('logging', {}), dict):
        raise ValueError("'logging' must be an object")
    fallbackName = config.get('fallbackName', DEFAULT_CONFIG['fallbackName'])
    if not isinstance(fallbackName, str) or not fallbackName:
        raise ValueError("'fallbackName' must be a non-empty string")


def loadConfig(path: str | Path, log: Optional[object] = None) -> ConfigResult:
    """Load a dendron JSON config, falling back to immutable defaults on error.

    Returns (config, fromFallback). Missing keys are filled from the defaults.
    """
    cfgPath = Path(path)

    try:
        with cfgPath.open('r', encoding='utf-8-sig') as f:
            loaded = json.load(f)
        _validateConfig(loaded)
        config = copy.deepcopy(dict(DEFAULT_CONFIG))
        config.update({key: value for key, value in loaded.items() if key != 'logging'})
        config['logging'].update(loaded.get('logging', {}))
        if log:
            log.info('Loaded dendron config', event='configLoad', configPath=str(cfgPath),
                     configVersion=config.get('configVersion'))
        return config, False
    except (OSError, ValueError) as exc:
        if log:
            log.error('Failed to load dendron config', event='configLoadError', configPath=str(cfgPath),
                      errorClass=type(exc).__name__, errorMsg=str(exc))

        fallback = copy.deepcopy(dict(DEFAULT_CONFIG))
        if log:
            log.warning('Loaded dendron config defaults', event='configBackupLoad',
                        configVersion=fallback['configVersion'])
        return fallback, True


def applyConfig(config: dict) -> None:
    """Install settings, default salts and logging from a loaded config."""
    from dendron.logging import configureLogging

    with _lock:
        _settings.update(copy.deepcopy(config))

    for name, salt in config.get('salts', {}).items():
        registerSalt(name, salt)

    loggingConfig = config.get('logging', {})
    configureLogging(logDir=loggingConfig.get('logDir'),
                     console=loggingConfig.get('console', True),
                     level=loggingConfig.get('level', 'INFO'))


def getSetting(key: str, default: Any = None) -> Any:
    return _settings.get(key, default)


def setSetting(key: str, value: Any) -> None:
    with _lock:
        _settings[key] = value


def moldKey(alias: str) -> str:
    """Global mold key for an engine alias: 'Order' -> 'OrderMold'."""
    return f"{llamalize(alias, capitalize=True)}Mold"


def registerMold(alias: str, mold: Any) -> None:
    """Publish a mold so engines with this alias can load without an explicit one."""
    with _lock:
        _molds[moldKey(alias)] = mold


def getMold(alias: Optional[str]) -> Optional[Any]:
    if not alias:
        return None
    return _molds.get(moldKey(alias))


def saltKey(name: str) -> str:
    """Global salt key for an engine name: 'merchant-compute' -> 'merchant_compute_salt'."""
    return cobralize(f"{name}-salt")


def registerSalt(name: str, salt: str) -> None:
    with _lock:
        _salts[saltKey(name)] = salt


def getSalt(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return _salts.get(saltKey(name))
