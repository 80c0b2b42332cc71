"""GitHubPusher - creates a repository and commits the fixed project in one batch."""

import logging
from dataclasses import dataclass

import requests

from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    html_url: str
    full_name: str


class GitHubPusher:
    """Sequential GitHub REST calls authenticated with a personal access token."""

    name = "github"

    def __init__(self, token, api_base=None, session=None):
        if not token:
            raise DeployerError("A GitHub token is required.", ErrorKind.PROVIDER_REQUEST)
        self.api_base = (api_base or DEFAULTS["github_api"]).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        })

    def _request(self, method, path, **kwargs):
        url = f"{self.api_base}{path}"
        try:
            resp = self.session.request(method, url, timeout=DEFAULTS["http_timeout"], **kwargs)
        except requests.RequestException as e:
            raise DeployerError(f"GitHub request failed: {e}", ErrorKind.PROVIDER_REQUEST) from e

        if not resp.ok:
            try:
                detail = resp.json().get("message", "")
            except ValueError:
                detail = resp.text
            raise DeployerError(
                f"GitHub API error {resp.status_code}: {detail or 'no details'}",
                ErrorKind.PROVIDER_REQUEST,
                status=resp.status_code,
            )
        return resp.json()

    def get_user(self):
        """Return the authenticated user; doubles as a token check."""
        return self._request("GET", "/user")

    def create_repo(self, name):
        # auto_init gives the repo a first commit to build on
        return self._request("POST", "/user/repos", json={"name": name, "auto_init": True})

    def commit_files(self, owner, repo, files, message, branch="main"):
        """Commit every file in one commit on top of branch. Returns the commit sha."""
        base = f"/repos/{owner}/{repo}"

        ref = self._request("GET", f"{base}/git/ref/heads/{branch}")
        base_sha = ref["object"]["sha"]
        base_commit = self._request("GET", f"{base}/git/commits/{base_sha}")

        tree_items = [
            {"path": path, "mode": "100644", "type": "blob", "content": content}
            for path, content in files.items()
        ]
        tree = self._request("POST", f"{base}/git/trees", json={
            "base_tree": base_commit["tree"]["sha"],
            "tree": tree_items,
        })
        commit = self._request("POST", f"{base}/git/commits", json={
            "message": message,
            "tree": tree["sha"],
            "parents": [base_sha],
        })
        self._request("PATCH", f"{base}/git/refs/heads/{branch}", json={"sha": commit["sha"]})
        logger.info("Committed %d file(s) to %s/%s@%s", len(files), owner, repo, commit["sha"][:7])
        return commit["sha"]

    def push(self, repo_name, files, message=None):
        """Create repo_name under the token's account and commit files to it."""
        user = self.get_user()
        repo = self.create_repo(repo_name)
        self.commit_files(
            user["login"],
            repo_name,
            files,
            message or DEFAULTS["commit_message"],
            branch=repo.get("default_branch") or "main",
        )
        return PushResult(html_url=repo["html_url"], full_name=repo["full_name"])
