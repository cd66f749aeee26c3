"""Llamadas finas al backend (leads, solicitudes de demo, candidaturas, usuarios).

Todas pasan por `ApiClient`, así heredan headers, token, reintentos y el
manejo del 401. Aquí solo se adapta la forma de los datos al esquema del
backend; las reglas de negocio viven en el servidor.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import quote

from adapters.http_client import ApiClient
from core.domain.endpoints import Endpoint
from core.domain.errors import ApiError

logger = logging.getLogger(__name__)


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_form_data(form: dict[str, Any]) -> dict[str, Any]:
    """Adapta datos crudos de formulario al esquema de leads del backend.

    - `firstName` + `lastName` se combinan en `name`.
    - `contact` es el nombre antiguo de `phone`.
    - `interests` (checkboxes) pasa a `interestedIn`.
    """

    first, last = form.get("firstName"), form.get("lastName")
    if first and last:
        name = f"{first} {last}".strip()
    else:
        name = _clean(form.get("name"))

    phone = _clean(form.get("phone")) or _clean(form.get("contact"))

    interests = form.get("interests")
    interested_in = [_clean(i) for i in interests] if isinstance(interests, list) else []

    return {
        "name": name,
        "email": _clean(form.get("email")),
        "phone": phone,
        "company": _clean(form.get("company")),
        "role": _clean(form.get("role")),
        "interestedIn": interested_in,
        "message": _clean(form.get("message")),
    }


def build_lead_payload(form: dict[str, Any]) -> dict[str, Any]:
    """Payload de `business-leads` para un formulario de demo."""

    metadata = {"source": "demo-form"}
    if isinstance(form.get("metadata"), dict):
        metadata.update(form["metadata"])

    return {
        "name": form.get("name"),
        "email": form.get("email"),
        "phone": form.get("phone"),
        "company": form.get("company") or "",
        "role": form.get("role") or "",
        "interests": form.get("interests") or form.get("interestedIn") or [],
        "message": form.get("message") or "",
        "source": "demo",
        "status": "new",
        "metadata": metadata,
    }


def build_job_application(form: dict[str, Any]) -> dict[str, Any]:
    """Copia limpia de la candidatura: `fullName` derivado y sin valores nulos."""

    data = dict(form)
    if not data.get("fullName") and (data.get("firstName") or data.get("lastName")):
        data["fullName"] = f"{data.get('firstName') or ''} {data.get('lastName') or ''}".strip()
    return {k: v for k, v in data.items() if v is not None}


def _form_value(value: Any) -> str:
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


class LeadsService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def submit_demo_request(self, form: dict[str, Any]) -> Any:
        return await self._client.post(Endpoint.DEMO_REQUESTS, form)

    async def submit_contact(self, form: dict[str, Any]) -> Any:
        return await self._client.post(Endpoint.CONTACT, normalize_form_data(form))

    async def submit_lead(self, form: dict[str, Any]) -> Any:
        return await self._client.post(Endpoint.BUSINESS_LEADS, build_lead_payload(form))

    async def list_business_leads(self) -> Any:
        return await self._client.get(Endpoint.BUSINESS_LEADS)

    async def count_demo_requests(self) -> int:
        data = await self._client.get(Endpoint.DEMO_REQUESTS_COUNT)
        count = data.get("count") if isinstance(data, dict) else None
        return count if isinstance(count, int) else 0

    async def fetch_submissions(self) -> list[Any]:
        data = await self._client.get(Endpoint.SUBMISSIONS)
        submissions = data.get("submissions") if isinstance(data, dict) else None
        return submissions if isinstance(submissions, list) else []

    async def delete_submission(self, submission_id: str) -> Any:
        path = f"{Endpoint.SUBMISSIONS.value}/{quote(str(submission_id), safe='')}"
        return await self._client.delete(path)

    async def delete_submissions(self, ids: Iterable[str]) -> Any:
        return await self._client.post(Endpoint.SUBMISSIONS_BULK_DELETE, {"ids": list(ids)})

    async def list_users(self) -> Any:
        return await self._client.get(Endpoint.USERS)

    async def create_user(self, user: dict[str, Any]) -> Any:
        return await self._client.post(Endpoint.USERS, user)

    async def submit_job_application(self, form: dict[str, Any], resume: Path | None = None) -> Any:
        """Envía una candidatura; con `resume` va como multipart."""

        data = build_job_application(form)
        if resume is None:
            return await self._client.post(Endpoint.JOB_APPLICATIONS, data)

        content_type = mimetypes.guess_type(resume.name)[0] or "application/octet-stream"
        logger.info("Including resume file %s (%.2f KB)", resume.name, resume.stat().st_size / 1024)
        return await self._client.request(
            Endpoint.JOB_APPLICATIONS,
            method="POST",
            form={key: _form_value(value) for key, value in data.items()},
            files={"resume": (resume.name, resume.read_bytes(), content_type)},
        )

    async def ping_backend(self, timeout: float = 5.0) -> bool:
        """Despierta el backend (cold start). Un intento, nunca lanza."""

        try:
            await self._client.get(Endpoint.PING, timeout=timeout, retries=0)
        except ApiError as exc:
            logger.debug("Ping failed: %s", exc.original_message or exc.message)
            return False
        return True
