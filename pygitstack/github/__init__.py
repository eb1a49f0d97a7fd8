"""GitHub interfaces and implementation."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, cast

import yaml
from github import GithubException

from ..errors import HostingApiFailure
from ..config.models import GitStackConfig
from .types import GraphQLResponseType, GitHubRequester, parse_search_response

logger = logging.getLogger(__name__)

@dataclass
class PullRequest:
    """Pull request info, keyed by its head branch (the group id)."""
    number: int
    url: str
    title: str = ""
    body: str = ""
    base: Optional[str] = None
    head: Optional[str] = None
    commit_shas: List[str] = field(default_factory=list)

    @property
    def remote_commit_count(self) -> int:
        return len(self.commit_shas)

    def __str__(self) -> str:
        return f"PR #{self.number} - {self.title}"

# Only the slice of PyGithub the client touches; tests pass in-memory objects
class GitHubUserProtocol(Protocol):
    @property
    def login(self) -> str: ...

class GitHubRefProtocol(Protocol):
    @property
    def ref(self) -> str:
        """Branch name, which for stack pull requests is the group id."""
        ...

class GitHubCommitProtocol(Protocol):
    @property
    def sha(self) -> str: ...

class GitHubPullRequestProtocol(Protocol):
    """Pull request object (real or fake)."""
    @property
    def number(self) -> int: ...

    @property
    def html_url(self) -> str: ...

    @property
    def title(self) -> str: ...

    @property
    def body(self) -> Optional[str]: ...

    @property
    def base(self) -> GitHubRefProtocol: ...

    @property
    def head(self) -> GitHubRefProtocol: ...

    @property
    def user(self) -> Optional[GitHubUserProtocol]: ...

    def edit(self, base: Optional[str] = None, body: Optional[str] = None) -> None: ...

    def get_commits(self) -> List[GitHubCommitProtocol]:
        """Commits of the pull request, oldest first."""
        ...

class GitHubRepoProtocol(Protocol):
    """Repository object (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol: ...

    def get_pulls(self, state: str = "open", head: str = "") -> List[GitHubPullRequestProtocol]: ...

    def create_pull(self, title: str, body: str, base: str, head: str) -> GitHubPullRequestProtocol: ...

class PyGithubProtocol(Protocol):
    """Top level client object (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol: ...

    def get_user(self) -> Optional[GitHubUserProtocol]:
        """The authenticated user."""
        ...

def _gh_hosts_file() -> Path:
    config_dir = os.environ.get("GH_CONFIG_DIR") or Path.home() / ".config" / "gh"
    return Path(config_dir) / "hosts.yml"

def find_github_token() -> Optional[str]:
    """Token from GITHUB_TOKEN, GH_TOKEN, or the hosts file of the gh CLI."""
    for var in ("GITHUB_TOKEN", "GH_TOKEN"):
        if os.environ.get(var):
            return os.environ[var]

    hosts_file = _gh_hosts_file()
    if not hosts_file.exists():
        return None
    try:
        hosts = yaml.safe_load(hosts_file.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading {hosts_file}: {e}")
        return None
    token = (hosts.get("github.com") or {}).get("oauth_token")
    return token if isinstance(token, str) else None

PULL_REQUESTS_QUERY = """
query Query($searchQuery: String!) {
  search(type:ISSUE, first:100, query:$searchQuery) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      __typename
      ... on PullRequest {
        number
        url
        title
        body
        baseRefName
        headRefName
        commits(first: 100) {
          totalCount
          nodes {
            commit {
              oid
            }
          }
        }
      }
    }
  }
}
"""

class GitHubClient:
    """Hosting collaborator: fetch, create and edit the pull requests of a stack."""
    def __init__(self, config: GitStackConfig, github_client: Optional[PyGithubProtocol] = None):
        """Initialize with config and GitHub client implementation.

        Args:
            config: The configuration
            github_client: GitHub client implementation (real or fake)
        """
        self.config = config
        self.client = github_client
        if github_client is None:
            logger.warning("No GitHub client provided - operations will fail")
        self._repo: Optional[GitHubRepoProtocol] = None
        self._numbers: Dict[str, int] = {}

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            owner = self.config.repo.github_repo_owner
            name = self.config.repo.github_repo_name
            if not owner or not name or self.client is None:
                raise HostingApiFailure("GitHub repo not initialized - check token and repo owner/name config")
            self._repo = self.client.get_repo(f"{owner}/{name}")
        return self._repo

    @repo.setter
    def repo(self, value: GitHubRepoProtocol) -> None:
        """Set the GitHub repository."""
        self._repo = value

    def _current_login(self) -> str:
        try:
            user = self.client.get_user() if self.client else None
            login = user.login if user is not None else None
        except GithubException as e:
            raise HostingApiFailure(f"Unable to determine the authenticated GitHub user: {e}") from e
        if not login:
            raise HostingApiFailure("Unable to determine the authenticated GitHub user")
        return login

    def get_pull_requests(self, branches: Iterable[str]) -> Dict[str, PullRequest]:
        """Open pull requests of the current user whose head branch is in ``branches``."""
        wanted = set(branches)
        if not wanted:
            return {}

        logger.info("> github fetch pull requests")
        try:
            result = self._get_pull_requests_graphql(wanted)
        except (GithubException, TypeError, AttributeError) as e:
            logger.error(f"GraphQL query failed: {e}")
            logger.info("Falling back to REST API")
            result = self._get_pull_requests_rest(wanted)

        for branch, pr in result.items():
            self._numbers[branch] = pr.number
            logger.debug(f"  PR #{pr.number}: head={branch} base={pr.base} commits={len(pr.commit_shas)}")
        return result

    def _get_pull_requests_graphql(self, wanted: Iterable[str]) -> Dict[str, PullRequest]:
        owner = self.config.repo.github_repo_owner
        name = self.config.repo.github_repo_name
        login = self._current_login()
        search_query = f"author:{login} is:pr is:open repo:{owner}/{name} sort:updated-desc"

        # PyGithub has no public GraphQL entry point
        req = cast(GitHubRequester, getattr(self.client, '_Github__requester'))
        result: GraphQLResponseType = req.requestJsonAndCheck(
            "POST",
            "https://api.github.com/graphql",
            input={
                "query": PULL_REQUESTS_QUERY,
                "variables": {"searchQuery": search_query},
            }
        )
        _headers, resp = result
        search = parse_search_response(resp).data.search
        pr_nodes = search.nodes
        logger.info(f"GraphQL returned {len(pr_nodes)} open PRs")
        if search.pageInfo.hasNextPage:
            logger.warning("More than 100 open pull requests, only the most recently updated were read")

        pull_requests: Dict[str, PullRequest] = {}
        for node in pr_nodes:
            if node.headRefName not in wanted or node.headRefName in pull_requests:
                continue
            commit_shas = node.commits.shas
            total = node.commits.totalCount or 0
            if total > len(commit_shas):
                # the search only carries the first page of commits
                logger.info(f"PR #{node.number} has {total} commits, reading them through REST")
                commit_shas = [c.sha for c in self.repo.get_pull(node.number).get_commits()]
            pull_requests[node.headRefName] = PullRequest(
                number=node.number,
                url=node.url,
                title=node.title,
                body=node.body,
                base=node.baseRefName,
                head=node.headRefName,
                commit_shas=commit_shas,
            )
        return pull_requests

    def _get_pull_requests_rest(self, wanted: Iterable[str]) -> Dict[str, PullRequest]:
        wanted = set(wanted)
        login = self._current_login()
        pull_requests: Dict[str, PullRequest] = {}
        try:
            for gh_pr in self.repo.get_pulls(state="open"):
                head = gh_pr.head.ref
                if head not in wanted or head in pull_requests:
                    continue
                if gh_pr.user and gh_pr.user.login != login:
                    continue
                pull_requests[head] = self._to_pull_request(gh_pr)
        except GithubException as e:
            raise HostingApiFailure(f"Unable to list pull requests: {e}") from e
        return pull_requests

    def _to_pull_request(self, gh_pr: GitHubPullRequestProtocol) -> PullRequest:
        return PullRequest(
            number=gh_pr.number,
            url=gh_pr.html_url,
            title=gh_pr.title,
            body=gh_pr.body or "",
            base=gh_pr.base.ref,
            head=gh_pr.head.ref,
            commit_shas=[c.sha for c in gh_pr.get_commits()],
        )

    def _get_pull(self, branch: str) -> GitHubPullRequestProtocol:
        number = self._numbers.get(branch)
        if number is not None:
            return self.repo.get_pull(number)
        owner = self.config.repo.github_repo_owner
        for gh_pr in self.repo.get_pulls(state="open", head=f"{owner}:{branch}"):
            if gh_pr.head.ref == branch:
                self._numbers[branch] = gh_pr.number
                return gh_pr
        raise HostingApiFailure(f"No open pull request for branch {branch}")

    def create_pull_request(self, branch: str, base: str, title: str, body: str = "") -> str:
        """Create a pull request for ``branch`` and return its url."""
        if self.config.tool.pretend:
            logger.info(f"[PRETEND] > github create {branch} -> {base} : {title}")
            return f"{branch} (pretend)"

        logger.info(f"> github create {branch} -> {base} : {title}")
        try:
            gh_pr = self.repo.create_pull(title=title, body=body, base=base, head=branch)
        except GithubException as e:
            if "A pull request already exists" in str(e):
                logger.warning(f"PR already exists for branch {branch}, attempting to find it")
                try:
                    existing = self._get_pull(branch)
                except GithubException as lookup_error:
                    raise HostingApiFailure(f"Unable to create pull request for {branch}: {lookup_error}") from e
                return existing.html_url
            raise HostingApiFailure(f"Unable to create pull request for {branch}: {e}") from e

        url = getattr(gh_pr, "html_url", None)
        if not url:
            raise HostingApiFailure(f"Unable to create pull request for {branch}: no url returned")
        self._numbers[branch] = gh_pr.number
        return url

    def edit_pull_request(self, branch: str, base: str, body: str) -> None:
        """Update base and body of the pull request for ``branch``."""
        if self.config.tool.pretend:
            logger.info(f"[PRETEND] > github edit {branch} -> {base}")
            return

        logger.info(f"> github edit {branch} -> {base}")
        try:
            gh_pr = self._get_pull(branch)
            gh_pr.edit(base=base, body=body)
        except GithubException as e:
            raise HostingApiFailure(f"Unable to update pull request for {branch}: {e}") from e

def number_from_url(url: str) -> int:
    """Pull request number from its html url, 0 when the url has none."""
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    return int(tail) if tail.isdigit() else 0
