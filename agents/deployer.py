"""RenderDeployer - creates a Render blueprint service from a pushed repository."""

import logging
from dataclasses import dataclass

import requests

from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class RenderOwner:
    id: str
    name: str
    email: str
    type: str       # "user" or "team"


@dataclass
class DeployResult:
    service_id: str
    dashboard_url: str


def dashboard_url(service_id):
    return f"{DEFAULTS['render_dashboard']}/{service_id}"


class RenderDeployer:
    """Render REST API calls authenticated with a bearer API key."""

    name = "render"
    label = "Render"

    def __init__(self, token, api_base=None, session=None):
        if not token:
            raise DeployerError("A Render API key is required.", ErrorKind.PROVIDER_REQUEST)
        self.api_base = (api_base or DEFAULTS["render_api"]).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    def _request(self, method, endpoint, **kwargs):
        url = f"{self.api_base}{endpoint}"
        try:
            resp = self.session.request(method, url, timeout=DEFAULTS["http_timeout"], **kwargs)
        except requests.RequestException as e:
            raise DeployerError(f"Render request failed: {e}", ErrorKind.PROVIDER_REQUEST) from e

        if not resp.ok:
            try:
                detail = resp.json().get("message")
            except ValueError:
                detail = None
            raise DeployerError(
                detail or f"Render API error: {resp.status_code}",
                ErrorKind.PROVIDER_REQUEST,
                status=resp.status_code,
            )
        return resp.json()

    def list_owners(self):
        """Return the users and teams this key may create services under."""
        data = self._request("GET", "/owners", params={"limit": 20})
        owners = [
            RenderOwner(
                id=item["owner"]["id"],
                name=item["owner"].get("name", ""),
                email=item["owner"].get("email", ""),
                type=item["owner"].get("type", "user"),
            )
            for item in data
            if isinstance(item, dict) and "owner" in item
        ]
        if not owners:
            raise DeployerError("No owner found for this Render API key.", ErrorKind.PROVIDER_REQUEST)
        return owners

    def create_blueprint(self, owner_id, repo_url, repo_name):
        # Build and start settings come from render.yaml in the repo
        return self._request("POST", f"/owners/{owner_id}/services", json={
            "type": "blueprint",
            "name": repo_name,
            "repo": repo_url,
            "autoDeploy": "yes",
        })

    def deploy(self, repo_url, repo_name, owner_id=None):
        """Create the blueprint under owner_id (default: first owner)."""
        if not owner_id:
            owner_id = self.list_owners()[0].id

        result = self.create_blueprint(owner_id, repo_url, repo_name)
        services = result.get("services") or []
        if not services or not services[0].get("id"):
            raise DeployerError(
                "Render created the blueprint but returned no services.",
                ErrorKind.PROVIDER_REQUEST,
            )
        service_id = services[0]["id"]
        logger.info("Render blueprint created for %s: service %s", repo_name, service_id)
        return DeployResult(service_id=service_id, dashboard_url=dashboard_url(service_id))
