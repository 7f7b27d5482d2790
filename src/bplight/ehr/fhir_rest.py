from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
import structlog

from bplight.config import settings
from bplight.config.thresholds import FHIR_PAGE_SIZE
from bplight.ehr.observation import FHIR_JSON, bp_search_query, get_path
from bplight.models.errors import FhirError

log = structlog.get_logger(__name__)


def bundle_resources(bundle: Any) -> List[Dict[str, Any]]:
    entries = get_path(bundle, "entry")
    if not isinstance(entries, list):
        return []
    return [e["resource"] for e in entries if isinstance(get_path(e, "resource"), dict)]


def next_link(bundle: Any) -> Optional[str]:
    links = get_path(bundle, "link")
    if not isinstance(links, list):
        return None
    for link in links:
        if get_path(link, "relation") == "next" and isinstance(get_path(link, "url"), str):
            return link["url"]
    return None


class FhirRestClient:
    """Unauthenticated FHIR REST access (public test servers)."""

    def __init__(
        self,
        base_url: str = settings.FHIR_BASE_URL,
        http: Optional[requests.Session] = None,
        timeout: float = settings.FHIR_TIMEOUT_SECONDS,
        max_pages: int = settings.FHIR_MAX_PAGES,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout
        self.max_pages = max_pages

    def _headers(self, with_body: bool = False) -> Dict[str, str]:
        h = {"Accept": FHIR_JSON}
        if with_body:
            h["Content-Type"] = FHIR_JSON
        return h

    def _req(self, method: str, url: str, *, params: Optional[Dict[str, Any]] = None,
             body: Optional[Dict[str, Any]] = None) -> Any:
        if not url.startswith("http"):
            url = f"{self.base_url}/{url.lstrip('/')}"
        try:
            r = self.http.request(
                method, url,
                headers=self._headers(with_body=body is not None),
                params=params, json=body, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FhirError(0, f"FHIR server unreachable: {e}") from e

        if not r.ok:
            raise FhirError(r.status_code, (r.reason or r.text or "Request failed").strip())
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise FhirError(r.status_code, "Response is not JSON") from e

    def probe(self) -> Dict[str, Any]:
        """Fetch the CapabilityStatement; raises FhirError when unreachable."""
        return self._req("GET", "metadata") or {}

    def first_patient(self) -> Optional[Dict[str, Any]]:
        bundle = self._req("GET", "Patient", params={"_count": 1})
        resources = bundle_resources(bundle)
        return resources[0] if resources else None

    def search_bp_observations(self, patient_id: str, count: int = FHIR_PAGE_SIZE) -> List[Dict[str, Any]]:
        bundle = self._req("GET", "Observation", params=bp_search_query(patient_id, count))
        resources = bundle_resources(bundle)
        pages = 1
        url = next_link(bundle)
        while url and pages < self.max_pages:
            bundle = self._req("GET", url)
            resources.extend(bundle_resources(bundle))
            pages += 1
            url = next_link(bundle)
        log.info("fhir_observations_fetched", patient_id=patient_id, count=len(resources), pages=pages)
        return resources

    def create_observation(self, observation: Dict[str, Any]) -> bool:
        try:
            self._req("POST", "Observation", body=observation)
        except FhirError as e:
            log.warning("fhir_create_failed", status=e.status_code, detail=e.detail)
            return False
        return True
