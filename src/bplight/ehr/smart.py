"""Authenticated SMART-on-FHIR session.

The OAuth launch itself happens elsewhere; this wraps the resulting access
token, FHIR base URL and patient context with the small surface the dashboard
needs: `patient.id`, `patient.read()`, `request(path)` and `create(resource)`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Union

import requests

from bplight.config import settings
from bplight.ehr.fhir_rest import FhirRestClient, bundle_resources, next_link
from bplight.ehr.observation import get_path


class PatientContext(Protocol):
    id: str

    def read(self) -> Dict[str, Any]: ...


class SmartSession(Protocol):
    patient: PatientContext

    def request(self, path: str, flat: bool = True) -> Union[List[Dict[str, Any]], Dict[str, Any]]: ...

    def create(self, resource: Dict[str, Any]) -> Dict[str, Any]: ...


class SmartPatient:
    def __init__(self, client: "SmartClient", patient_id: str):
        self._client = client
        self.id = patient_id

    def read(self) -> Dict[str, Any]:
        return self._client._rest._req("GET", f"Patient/{self.id}")


class SmartClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        patient_id: str,
        http: Optional[requests.Session] = None,
        timeout: float = settings.FHIR_TIMEOUT_SECONDS,
        max_pages: int = settings.FHIR_MAX_PAGES,
    ):
        http = http or requests.Session()
        http.headers["Authorization"] = f"Bearer {access_token}"
        self._rest = FhirRestClient(base_url, http=http, timeout=timeout, max_pages=max_pages)
        self.patient = SmartPatient(self, patient_id)

    @classmethod
    def from_settings(cls) -> Optional["SmartClient"]:
        if not settings.smart_launch_configured():
            return None
        return cls(settings.SMART_FHIR_BASE_URL, settings.SMART_ACCESS_TOKEN, settings.SMART_PATIENT_ID)

    def request(self, path: str, flat: bool = True):
        """GET a relative path. With `flat`, bundles come back as a list of
        their entry resources (following up to `max_pages` pages)."""
        body = self._rest._req("GET", path)
        if not flat or get_path(body, "resourceType") != "Bundle":
            return body
        resources = bundle_resources(body)
        pages = 1
        url = next_link(body)
        while url and pages < self._rest.max_pages:
            body = self._rest._req("GET", url)
            resources.extend(bundle_resources(body))
            pages += 1
            url = next_link(body)
        return resources

    def create(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        rtype = resource.get("resourceType")
        if not rtype:
            raise ValueError("resource has no resourceType")
        return self._rest._req("POST", rtype, body=resource)
