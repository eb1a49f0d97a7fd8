"""Pydantic models for the pull request search query."""

from typing import Dict, List, Optional, Protocol, Tuple, Union
from pydantic import BaseModel, Field

class CommitOid(BaseModel):
    oid: str

class CommitEdge(BaseModel):
    commit: CommitOid

class CommitConnection(BaseModel):
    totalCount: Optional[int] = None
    nodes: List[CommitEdge] = Field(default_factory=list)

    @property
    def shas(self) -> List[str]:
        return [edge.commit.oid for edge in self.nodes]

class SearchPullRequest(BaseModel):
    """One pull request node of the search result."""
    number: int
    url: str
    title: str
    body: str = ""
    baseRefName: str
    headRefName: str
    commits: CommitConnection

class SearchPage(BaseModel):
    hasNextPage: bool
    endCursor: Optional[str] = None

class SearchResult(BaseModel):
    nodes: List[SearchPullRequest]
    pageInfo: SearchPage

class SearchData(BaseModel):
    search: SearchResult

class QueryError(BaseModel):
    message: str
    path: Optional[List[Union[str, int]]] = None

class SearchResponse(BaseModel):
    data: SearchData
    errors: Optional[List[QueryError]] = None

# (headers, json body) as returned by PyGithub's requester
GraphQLResponseType = Tuple[Dict[str, object], Dict[str, object]]

def parse_search_response(response: Dict[str, object]) -> SearchResponse:
    """Validate a search response, TypeError when it has an unexpected shape."""
    try:
        return SearchResponse.model_validate(response)
    except Exception as e:
        raise TypeError(f"Invalid GraphQL response: {e}")

class GitHubRequester(Protocol):
    """The private ``_Github__requester`` of PyGithub, used for GraphQL."""
    def requestJsonAndCheck(
        self,
        verb: str,
        url: str,
        parameters: Optional[Dict[str, object]] = None,
        headers: Optional[Dict[str, str]] = None,
        input: Optional[Dict[str, object]] = None
    ) -> GraphQLResponseType:
        ...
