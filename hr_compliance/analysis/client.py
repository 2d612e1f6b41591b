"""Analysis classifier client.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint and requests a
strict JSON-schema response for each analysis kind. Every transport or
payload failure surfaces as ``AnalysisError``.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from hr_compliance.analysis.schemas import (
    AnalysisContext,
    DocumentClassification,
    PayslipAnalysis,
    TimesheetAnalysis,
)
from hr_compliance.common.exceptions import AnalysisError
from hr_compliance.config import settings

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_SEVERITIES = ["low", "medium", "high", "critical"]

_ALERTS_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "type": {"type": "string"},
            "severity": {"type": "string", "enum": _SEVERITIES},
            "description": {"type": "string"},
            "date": {"type": "string"},
        },
        "required": ["type", "severity", "description"],
        "additionalProperties": False,
    },
}

TIMESHEET_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "employeeName": {"type": "string"},
        "referenceDate": {"type": "string"},
        "workDays": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "date": {"type": "string"},
                    "entryTime": {"type": "string"},
                    "lunchOut": {"type": "string"},
                    "lunchIn": {"type": "string"},
                    "exitTime": {"type": "string"},
                    "totalHours": {"type": "number"},
                    "issues": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["date", "issues"],
                "additionalProperties": False,
            },
        },
        "summary": {
            "type": "object",
            "properties": {
                "totalDaysWorked": {"type": "integer"},
                "totalHours": {"type": "number"},
                "lateArrivals": {"type": "integer"},
                "earlyDepartures": {"type": "integer"},
                "unauthorizedOvertime": {"type": "integer"},
                "missingPunches": {"type": "integer"},
                "absencesWithoutJustification": {"type": "integer"},
            },
            "additionalProperties": False,
        },
        "alerts": _ALERTS_SCHEMA,
        "complianceScore": {"type": "integer", "description": "Score from 0 to 100"},
        "rawText": {"type": "string"},
    },
    "required": ["workDays", "summary", "alerts", "complianceScore"],
    "additionalProperties": False,
}

PAYSLIP_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "employeeName": {"type": "string"},
        "referenceMonth": {"type": "string"},
        "baseSalary": {"type": "number"},
        "grossSalary": {"type": "number"},
        "netSalary": {"type": "number"},
        "earnings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "description": {"type": "string"},
                    "value": {"type": "number"},
                },
                "required": ["description", "value"],
                "additionalProperties": False,
            },
        },
        "deductions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "description": {"type": "string"},
                    "value": {"type": "number"},
                    "isRegular": {"type": "boolean"},
                },
                "required": ["description", "value", "isRegular"],
                "additionalProperties": False,
            },
        },
        "alerts": _ALERTS_SCHEMA,
        "calculationCheck": {
            "type": "object",
            "properties": {
                "isCorrect": {"type": "boolean"},
                "expectedNet": {"type": "number"},
                "actualNet": {"type": "number"},
                "difference": {"type": "number"},
            },
            "required": ["isCorrect"],
            "additionalProperties": False,
        },
        "complianceScore": {"type": "integer"},
        "rawText": {"type": "string"},
    },
    "required": ["earnings", "deductions", "alerts", "calculationCheck", "complianceScore"],
    "additionalProperties": False,
}

CLASSIFICATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "documentType": {"type": "string"},
        "confidence": {"type": "number", "description": "0 to 1"},
        "extractedData": {"type": "object", "additionalProperties": True},
    },
    "required": ["documentType", "confidence", "extractedData"],
    "additionalProperties": False,
}

TIMESHEET_PROMPT = """You are an expert in time-sheet analysis and Brazilian labour compliance.
Extract every relevant entry from the time sheet and check it against these rules:
- Standard working hours: {work_hours} with a one-hour lunch break
- Late arrival: entry after the scheduled start
- Early departure: exit before the scheduled end
- Unauthorized overtime: more than 2 extra hours per day, or weekend work
- Missing punch: an entry without an exit or vice versa
- Unjustified absence: a working day with no records
Return the full analysis as structured JSON."""

PAYSLIP_PROMPT = """You are an expert in payslip analysis and Brazilian labour compliance.
Extract every relevant amount from the payslip and check:
- Base salary matches the contract{expected_salary}
- INSS and IRRF deductions follow the current tables
- FGTS is 8% of gross salary
- Irregular deductions: anything not provided for by law or contract
- Net salary equals gross salary minus deductions
Return the full analysis as structured JSON."""

CLASSIFICATION_PROMPT = """You are an expert in classifying HR documents.
Classify the document and extract its relevant data.
Possible types: contrato_trabalho, rg, cpf, ctps, comprovante_residencia,
certidao_nascimento, titulo_eleitor, certificado_reservista, cnh,
atestado_medico, aso, epi, advertencia, ferias, trct, outro."""


class AnalysisClient:
    """Client for the external analysis classifier."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.ANALYSIS_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ANALYSIS_API_KEY
        self.model = model or settings.ANALYSIS_MODEL
        self.timeout = timeout or settings.ANALYSIS_TIMEOUT_SECONDS
        self._transport = transport

    # ── Public API ──────────────────────────────────────────────────

    async def analyze_timesheet(
        self,
        file_url: str,
        context: AnalysisContext,
        *,
        text: Optional[str] = None,
    ) -> TimesheetAnalysis:
        who = f" for employee {context.name}" if context.name else ""
        payload = await self._complete(
            system_prompt=TIMESHEET_PROMPT.format(work_hours=context.work_hours),
            instruction=f"Analyze this time sheet{who} and return the analysis as JSON.",
            file_url=file_url,
            text=text,
            schema_name="timesheet_analysis",
            schema=TIMESHEET_SCHEMA,
        )
        return self._validate(TimesheetAnalysis, payload)

    async def analyze_payslip(
        self,
        file_url: str,
        context: AnalysisContext,
        *,
        text: Optional[str] = None,
    ) -> PayslipAnalysis:
        expected = f" (expected: R$ {context.salary:.2f})" if context.salary else ""
        who = f" for employee {context.name}" if context.name else ""
        payload = await self._complete(
            system_prompt=PAYSLIP_PROMPT.format(expected_salary=expected),
            instruction=f"Analyze this payslip{who} and return the analysis as JSON.",
            file_url=file_url,
            text=text,
            schema_name="payslip_analysis",
            schema=PAYSLIP_SCHEMA,
        )
        return self._validate(PayslipAnalysis, payload)

    async def classify(self, file_url: str) -> DocumentClassification:
        payload = await self._complete(
            system_prompt=CLASSIFICATION_PROMPT,
            instruction="Classify this document and extract its relevant data.",
            file_url=file_url,
            text=None,
            schema_name="document_classification",
            schema=CLASSIFICATION_SCHEMA,
        )
        return self._validate(DocumentClassification, payload)

    # ── Internals ───────────────────────────────────────────────────

    @staticmethod
    def _validate(model: type[M], payload: dict[str, Any]) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise AnalysisError(f"Classifier returned an invalid {model.__name__}: {exc}")

    async def _complete(
        self,
        *,
        system_prompt: str,
        instruction: str,
        file_url: str,
        text: Optional[str],
        schema_name: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        """POST one chat completion and return the decoded JSON content."""
        if text:
            user_content: list[dict[str, Any]] = [
                {"type": "text", "text": f"{instruction}\n\n{text}"},
            ]
        else:
            user_content = [
                {"type": "text", "text": instruction},
                {"type": "image_url", "image_url": {"url": file_url, "detail": "high"}},
            ]

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": True, "schema": schema},
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/chat/completions", json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.error("Classifier request %s failed: %s", schema_name, exc)
            raise AnalysisError(f"Classifier request failed: {exc}") from exc
        except ValueError as exc:
            raise AnalysisError("Classifier returned a non-JSON response") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AnalysisError("No response from classifier") from exc
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        if not content:
            raise AnalysisError("No response from classifier")
        if not isinstance(content, str):
            raise AnalysisError(
                f"Classifier content is not text: {type(content).__name__}"
            )

        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"Classifier content is not valid JSON: {exc}") from exc


@lru_cache
def get_analysis_client() -> AnalysisClient:
    """FastAPI dependency: the process-wide classifier client."""
    return AnalysisClient()
