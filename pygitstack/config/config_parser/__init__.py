"""Config parser logic."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging
import re
import yaml

from ...errors import ExternalCommandFailure
from ...git import GitInterface

logger = logging.getLogger(__name__)

RawConfig = Dict[str, Dict[str, Any]]

CONFIG_FILE_NAME = ".git-stack.yaml"

_REMOTE_URL_RE = re.compile(r'(?:[:/])([^/:]+)/([^/]+?)(?:\.git)?/?$')

def parse_remote_url(remote_url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, name) from an SSH or HTTPS remote url."""
    match = _REMOTE_URL_RE.search(remote_url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)

def parse_config(git_cmd: GitInterface, repo_root: Optional[str] = None) -> RawConfig:
    """Parse config from defaults, the repository config file and the git remote."""
    config: RawConfig = {
        'repo': {
            'remote': 'origin',
            'trunk': 'main',
            'branch_prefix': 'gs-',
        },
        'user': {
            'verify': True,
        },
        'tool': {
            'pretend': False,
        },
    }

    config_path = Path(repo_root or '.') / CONFIG_FILE_NAME
    try:
        with open(config_path, 'r') as f:
            logger.info(f"Found {CONFIG_FILE_NAME}, loading...")
            file_config = yaml.safe_load(f)
            logger.debug(f"Config from {CONFIG_FILE_NAME}: {file_config}")
            if isinstance(file_config, dict):
                for section in ('repo', 'user'):
                    if isinstance(file_config.get(section), dict):
                        config[section].update(file_config[section])
    except FileNotFoundError:
        logger.info(f"No {CONFIG_FILE_NAME} found, using defaults")

    repo = config['repo']
    if not repo.get('github_repo_owner') or not repo.get('github_repo_name'):
        try:
            remote_url = git_cmd.must_git(["remote", "get-url", repo['remote']])
        except ExternalCommandFailure as e:
            logger.error(f"Failed to read git remote: {e}")
        else:
            parsed = parse_remote_url(remote_url)
            if parsed:
                if not repo.get('github_repo_owner'):
                    repo['github_repo_owner'] = parsed[0]
                if not repo.get('github_repo_name'):
                    repo['github_repo_name'] = parsed[1]
            else:
                logger.warning(f"Could not parse owner/name from remote url {remote_url}")

    return config
