"""Config module."""

from typing import Dict, Any
from .models import RepoConfig, UserConfig, GitStackConfig, ToolConfig

class Config(GitStackConfig):
    """Config object holding repository, user and tool config.

    Built from the raw nested dict produced by the config parser.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(
            repo=RepoConfig.model_validate(config.get('repo', {})),
            user=UserConfig.model_validate(config.get('user', {})),
            tool=ToolConfig.model_validate(config.get('tool', {})),
        )

def default_config() -> Config:
    """Get default config without parsing git."""
    return Config({
        'repo': {
            'remote': 'origin',
            'trunk': 'main',
        },
        'user': {},
        'tool': {},
    })

__all__ = ['Config', 'default_config', 'RepoConfig', 'UserConfig', 'ToolConfig', 'GitStackConfig']
