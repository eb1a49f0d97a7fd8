"""Wrap PyGithub objects in the protocols GitHubClient works against."""

from typing import Dict, List, Optional
import logging

from github import Auth, Github
from github.GithubObject import NotSet
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.Repository import Repository

from . import (
    GitHubCommitProtocol,
    GitHubPullRequestProtocol,
    GitHubRefProtocol,
    GitHubRepoProtocol,
    GitHubUserProtocol,
    PyGithubProtocol,
)
from .types import GitHubRequester, GraphQLResponseType

logger = logging.getLogger(__name__)


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Pass-through for a PyGithub PullRequest."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def html_url(self) -> str:
        return self._pr.html_url

    @property
    def title(self) -> str:
        return self._pr.title

    @property
    def body(self) -> Optional[str]:
        return self._pr.body

    @property
    def base(self) -> GitHubRefProtocol:
        return self._pr.base

    @property
    def head(self) -> GitHubRefProtocol:
        return self._pr.head

    @property
    def user(self) -> Optional[GitHubUserProtocol]:
        return self._pr.user

    def edit(self, base: Optional[str] = None, body: Optional[str] = None) -> None:
        # NotSet leaves the field untouched on the API side
        self._pr.edit(
            base=NotSet if base is None else base,
            body=NotSet if body is None else body,
        )

    def get_commits(self) -> List[GitHubCommitProtocol]:
        return list(self._pr.get_commits())


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Pass-through for a PyGithub Repository."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        return PyGithubPullRequestAdapter(self._repo.get_pull(number))

    def get_pulls(self, state: str = "open", head: str = "") -> List[GitHubPullRequestProtocol]:
        if head:
            pulls = self._repo.get_pulls(state=state, head=head)
        else:
            pulls = self._repo.get_pulls(state=state)
        return [PyGithubPullRequestAdapter(pr) for pr in pulls]

    def create_pull(self, title: str, body: str, base: str, head: str) -> GitHubPullRequestProtocol:
        logger.debug(f"create_pull head={head} base={base}")
        return PyGithubPullRequestAdapter(
            self._repo.create_pull(base=base, head=head, title=title, body=body))


class PyGithubRequesterAdapter(GitHubRequester):
    """Normalizes what PyGithub's requester returns for GraphQL posts."""

    def __init__(self, requester: GitHubRequester) -> None:
        self._requester = requester

    def requestJsonAndCheck(
        self, verb: str, url: str, parameters: Optional[Dict[str, object]] = None,
        headers: Optional[Dict[str, str]] = None, input: Optional[Dict[str, object]] = None
    ) -> GraphQLResponseType:
        response_headers, data = self._requester.requestJsonAndCheck(
            verb, url, parameters=parameters, headers=headers, input=input
        )
        return (response_headers or {}, data)


class PyGithubAdapter(PyGithubProtocol):
    """Authenticated PyGithub client behind the protocol."""

    def __init__(self, github: Github) -> None:
        self._github = github
        self._requester: Optional[PyGithubRequesterAdapter] = None

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))

    def get_user(self) -> Optional[GitHubUserProtocol]:
        return self._github.get_user()

    @property
    def _Github__requester(self) -> GitHubRequester:
        # Same attribute name GitHubClient reads off a plain Github object
        if self._requester is None:
            self._requester = PyGithubRequesterAdapter(getattr(self._github, '_Github__requester'))
        return self._requester


def create_client(token: str) -> PyGithubAdapter:
    """PyGithub client authenticated with ``token``."""
    return PyGithubAdapter(Github(auth=Auth.Token(token)))
