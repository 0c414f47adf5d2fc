"""
Configuration management for the ASL biometric verification service.
"""
import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, Mapping
from dataclasses import dataclass, field


# Environment overrides: config attribute -> variable names, first match wins
ENV_OVERRIDES = {
    "verification_threshold": ("VERIFICATION_THRESHOLD", "BIOMETRIC_VERIFICATION_THRESHOLD"),
    "min_enrollment_quality": ("MIN_ENROLLMENT_QUALITY", "BIOMETRIC_MIN_QUALITY"),
    "port": ("ASL_BIOMETRICS_PORT",),
}


@dataclass
class MatchingConfig:
    """Identity matching settings."""
    verification_threshold: float = 0.75
    min_enrollment_quality: float = 0.5
    max_patterns_per_profile: int = 50


@dataclass
class ChallengeConfig:
    """Verification challenge settings."""
    ttl_ms: int = 60000


@dataclass
class SessionConfig:
    """Telehealth session housekeeping."""
    ttl_ms: int = 2 * 60 * 60 * 1000
    sweep_interval_ms: int = 5 * 60 * 1000


@dataclass
class ServerConfig:
    """HTTP binding settings."""
    host: str = "0.0.0.0"
    port: int = 3007


@dataclass
class Cfg:
    """Main configuration class."""
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    challenge: ChallengeConfig = field(default_factory=ChallengeConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Cfg:
    """
    Load configuration from YAML file, then apply environment overrides.

    Args:
        path: Path to config file. If None, uses config.default.yaml when present
        env: Environment mapping. If None, uses os.environ

    Returns:
        Configuration object with all settings
    """
    if path is None:
        # Use default config file in project root
        project_root = Path(__file__).parent.parent
        default_path = project_root / "config.default.yaml"
        data = _read_yaml(default_path) if default_path.exists() else {}
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = _read_yaml(config_path)

    cfg = _dict_to_config(data)
    _apply_env(cfg, os.environ if env is None else env)
    _check(cfg)
    return cfg


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def _dict_to_config(data: Dict[str, Any]) -> Cfg:
    """Convert dictionary to configuration object."""
    matching_data = data.get('matching', {})
    matching = MatchingConfig(
        verification_threshold=float(matching_data.get('verification_threshold', MatchingConfig.verification_threshold)),
        min_enrollment_quality=float(matching_data.get('min_enrollment_quality', MatchingConfig.min_enrollment_quality)),
        max_patterns_per_profile=int(matching_data.get('max_patterns_per_profile', MatchingConfig.max_patterns_per_profile))
    )

    challenge_data = data.get('challenge', {})
    challenge = ChallengeConfig(
        ttl_ms=int(challenge_data.get('ttl_ms', ChallengeConfig.ttl_ms))
    )

    session_data = data.get('session', {})
    session = SessionConfig(
        ttl_ms=int(session_data.get('ttl_ms', SessionConfig.ttl_ms)),
        sweep_interval_ms=int(session_data.get('sweep_interval_ms', SessionConfig.sweep_interval_ms))
    )

    server_data = data.get('server', {})
    server = ServerConfig(
        host=str(server_data.get('host', ServerConfig.host)),
        port=int(server_data.get('port', ServerConfig.port))
    )

    return Cfg(
        matching=matching,
        challenge=challenge,
        session=session,
        server=server
    )


def _env_value(env: Mapping[str, str], name: str) -> Optional[str]:
    for var in ENV_OVERRIDES[name]:
        value = env.get(var)
        if value not in (None, ""):
            return value
    return None


def _apply_env(cfg: Cfg, env: Mapping[str, str]) -> None:
    threshold = _env_value(env, "verification_threshold")
    if threshold is not None:
        cfg.matching.verification_threshold = float(threshold)

    min_quality = _env_value(env, "min_enrollment_quality")
    if min_quality is not None:
        cfg.matching.min_enrollment_quality = float(min_quality)

    port = _env_value(env, "port")
    if port is not None:
        cfg.server.port = int(port)


def _check(cfg: Cfg) -> None:
    for name in ("verification_threshold", "min_enrollment_quality"):
        value = getattr(cfg.matching, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be within [0, 1], got {value}")
    if cfg.matching.max_patterns_per_profile < 1:
        raise ValueError("max_patterns_per_profile must be at least 1")
    if cfg.challenge.ttl_ms <= 0:
        raise ValueError("challenge ttl_ms must be positive")
