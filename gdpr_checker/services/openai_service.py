"""OpenAI-compatible GDPR analysis service.

The analyzer is a narrow interface so the orchestrator can run against the real
IO Intelligence endpoint or an in-process fake.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx
import openai
from openai import OpenAI

from gdpr_checker.errors import ComplianceServiceError

logger = logging.getLogger(__name__)

COMPLIANCE_LEVELS = ["Non-Compliant", "Partially Compliant", "Mostly Compliant", "Fully Compliant"]
ANALYSIS_ERROR_LEVEL = "Analysis Error"
AREA_STATUSES = {"compliant", "partial", "missing"}
PRIORITIES = ["High", "Medium", "Low"]

GDPR_AREAS: List[Tuple[str, str]] = [
    ("lawfulBasis", "Lawful Basis for Processing"),
    ("dataSubjectRights", "Data Subject Rights"),
    ("consentManagement", "Consent Management"),
    ("dpia", "Data Protection Impact Assessment (DPIA)"),
    ("dataRetention", "Data Retention"),
    ("dataSecurity", "Data Security"),
    ("internationalTransfers", "International Transfers"),
    ("breachNotification", "Breach Notification"),
    ("privacyByDesign", "Privacy by Design"),
    ("recordKeeping", "Record Keeping"),
]

ANALYSIS_SYSTEM_PROMPT = (
    "You are a GDPR compliance expert. Analyze documents for GDPR compliance and provide "
    "detailed, structured feedback. Always respond with valid JSON only, no markdown formatting."
)
IMPROVEMENTS_SYSTEM_PROMPT = (
    "You are a GDPR implementation specialist. Respond with valid JSON only, no markdown formatting."
)

DEFAULT_IMPROVEMENTS: Dict[str, Any] = {
    "prioritizedImprovements": [
        {
            "priority": "High",
            "area": "General Compliance",
            "description": "Review and update privacy policy based on analysis results",
            "implementation": "Consult with legal team and update documentation",
            "templateText": "Contact legal counsel for specific language recommendations",
            "timeline": "30-60 days",
        }
    ]
}


class ComplianceAnalyzer(ABC):
    """Contract for the external compliance capability."""

    default_model: str = ""

    @abstractmethod
    def assess_compliance(self, document_text: str, document_name: str = "document") -> Dict[str, Any]:
        """Return an AnalysisResult dict for the document.

        Raises:
            ComplianceServiceError: the provider could not be reached or refused.
        """

    @abstractmethod
    def suggest_improvements(self, analysis: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``{"prioritizedImprovements": [...]}`` for an analysis."""

    @abstractmethod
    def list_models(self) -> List[str]:
        """Return model identifiers offered by the provider."""


def analysis_prompt(content: str, document_name: str) -> str:
    areas = "\n".join(f"{i}. **{label}**" for i, (_, label) in enumerate(GDPR_AREAS, start=1))
    detailed = ",\n".join(
        f'    "{key}": {{"status": "compliant/partial/missing", "details": "explanation"}}'
        for key, _ in GDPR_AREAS
    )
    return f"""
Please analyze the following document for GDPR compliance. Provide a structured analysis covering these key areas:

Document Name: {document_name}

GDPR Compliance Areas to Check:
{areas}

IMPORTANT: Respond with ONLY valid JSON, no markdown formatting, no code blocks, no backticks:
{{
  "overallScore": [0-100],
  "complianceLevel": {json.dumps(COMPLIANCE_LEVELS)},
  "summary": "Brief overview of compliance status",
  "strengths": ["List of compliant areas"],
  "weaknesses": ["List of non-compliant or missing areas"],
  "recommendations": ["Specific actionable recommendations"],
  "detailedAnalysis": {{
{detailed}
  }}
}}

Document Content:
{content}
""".strip()


def improvements_prompt(analysis: Dict[str, Any]) -> str:
    weaknesses = ", ".join(str(w) for w in (analysis.get("weaknesses") or []))
    return f"""
Based on the following GDPR compliance analysis, provide specific, actionable improvement suggestions:

Analysis Summary: {analysis.get("summary", "")}
Compliance Level: {analysis.get("complianceLevel", "")}
Current Weaknesses: {weaknesses}

Please provide:
1. Priority ranking of improvements (High, Medium, Low)
2. Specific implementation steps
3. Template language or clauses that could be added
4. Timeline recommendations

IMPORTANT: Respond with ONLY valid JSON, no markdown formatting, no code blocks, no backticks:
{{
  "prioritizedImprovements": [
    {{
      "priority": "High/Medium/Low",
      "area": "GDPR area name",
      "description": "What needs to be improved",
      "implementation": "Step-by-step guidance",
      "templateText": "Suggested clause or language to add",
      "timeline": "Recommended timeframe"
    }}
  ]
}}
""".strip()


def strip_code_fences(s: str) -> str:
    text = (s or "").strip()
    if text.startswith("```"):
        # Remove opening fence (```json or ```)
        lines = text.split("\n", 1)
        text = lines[1] if len(lines) > 1 else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
        elif "```" in text:
            text = text.rsplit("```", 1)[0]
    return text.strip()


def level_for_score(score: int) -> str:
    if score >= 90:
        return "Fully Compliant"
    if score >= 70:
        return "Mostly Compliant"
    if score >= 40:
        return "Partially Compliant"
    return "Non-Compliant"


def _str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v not in (None, "")]


def repair_analysis(obj: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate analysis output and repair missing/malformed fields.

    Keeps the report renderable when the model output drifts from the schema.
    """
    result = dict(obj)

    try:
        score = int(round(float(result.get("overallScore"))))
    except (TypeError, ValueError, OverflowError):
        score = 0
    result["overallScore"] = max(0, min(100, score))

    level = result.get("complianceLevel")
    if level not in COMPLIANCE_LEVELS and level != ANALYSIS_ERROR_LEVEL:
        result["complianceLevel"] = level_for_score(result["overallScore"])

    result["summary"] = str(result.get("summary") or "")
    for field in ("strengths", "weaknesses", "recommendations"):
        result[field] = _str_list(result.get(field))

    detailed = result.get("detailedAnalysis")
    if not isinstance(detailed, dict):
        detailed = {}
    repaired = {}
    for key, _ in GDPR_AREAS:
        area = detailed.get(key)
        if not isinstance(area, dict):
            area = {}
        status = str(area.get("status") or "").strip().lower()
        repaired[key] = {
            "status": status if status in AREA_STATUSES else "missing",
            "details": str(area.get("details") or "No assessment provided"),
        }
    result["detailedAnalysis"] = repaired
    return result


def _placeholder_areas(details: str) -> Dict[str, Dict[str, str]]:
    return {key: {"status": "missing", "details": details} for key, _ in GDPR_AREAS}


def parse_analysis_response(raw: str) -> Dict[str, Any]:
    """Turn raw model output into an AnalysisResult, degrading instead of raising."""
    content = strip_code_fences(raw)
    m = re.search(r"\{.*\}", content, flags=re.DOTALL)
    if not m:
        logger.warning("Model response contained no JSON object, using placeholder analysis")
        return {
            "overallScore": 50,
            "complianceLevel": "Partially Compliant",
            "summary": "Analysis completed but response format needs adjustment",
            "strengths": ["Document was successfully analyzed"],
            "weaknesses": ["Response format could not be parsed as JSON"],
            "recommendations": ["Please review the document manually for detailed compliance assessment"],
            "detailedAnalysis": _placeholder_areas("Not assessed: response could not be parsed"),
            "rawResponse": raw,
        }
    try:
        obj = json.loads(m.group(0))
        if not isinstance(obj, dict):
            raise ValueError("analysis JSON must be an object")
    except ValueError as e:
        logger.warning("Model response JSON could not be parsed: %s", e)
        return {
            "overallScore": 0,
            "complianceLevel": ANALYSIS_ERROR_LEVEL,
            "summary": "Failed to parse compliance analysis",
            "strengths": [],
            "weaknesses": ["Analysis could not be completed"],
            "recommendations": ["Please try uploading the document again"],
            "detailedAnalysis": _placeholder_areas("Not assessed: analysis could not be completed"),
            "error": str(e),
            "rawResponse": raw,
        }
    return repair_analysis(obj)


def parse_improvements_response(raw: str) -> Dict[str, Any]:
    try:
        obj = json.loads(strip_code_fences(raw))
    except ValueError as e:
        logger.warning("Improvement suggestions could not be parsed: %s", e)
        return json.loads(json.dumps(DEFAULT_IMPROVEMENTS))
    items = obj.get("prioritizedImprovements") if isinstance(obj, dict) else None
    if not isinstance(items, list):
        return json.loads(json.dumps(DEFAULT_IMPROVEMENTS))

    improvements = []
    for item in items:
        if not isinstance(item, dict):
            continue
        priority = str(item.get("priority") or "").strip().capitalize()
        improvements.append({
            "priority": priority if priority in PRIORITIES else "Medium",
            "area": str(item.get("area") or ""),
            "description": str(item.get("description") or ""),
            "implementation": str(item.get("implementation") or ""),
            "templateText": str(item.get("templateText") or ""),
            "timeline": str(item.get("timeline") or ""),
        })
    return {"prioritizedImprovements": improvements}


class OpenAIComplianceService(ComplianceAnalyzer):
    """GDPR analysis against an OpenAI-compatible chat completions API."""

    def __init__(self, api_key: str, base_url: Optional[str], model: str, timeout: float = 120):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url or None
        self.default_model = model
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    def client_ready(self) -> Tuple[bool, str]:
        if not self.api_key:
            return False, "IO_INTELLIGENCE_API_KEY is missing"
        return True, ""

    def get_client(self) -> OpenAI:
        ok, msg = self.client_ready()
        if not ok:
            raise ComplianceServiceError(msg)
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _chat(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        client = self.get_client()
        try:
            res = client.chat.completions.create(
                model=self.default_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except (openai.APIConnectionError, httpx.TimeoutException) as e:
            raise ComplianceServiceError(f"LLM network error: {e}") from e
        except openai.APIError as e:
            raise ComplianceServiceError(f"LLM API error: {e}") from e
        return (res.choices[0].message.content or "").strip()

    def assess_compliance(self, document_text: str, document_name: str = "document") -> Dict[str, Any]:
        logger.debug("Requesting GDPR analysis for %s with model %s", document_name, self.default_model)
        raw = self._chat(ANALYSIS_SYSTEM_PROMPT, analysis_prompt(document_text, document_name), 0.3, 2000)
        return parse_analysis_response(raw)

    def suggest_improvements(self, analysis: Dict[str, Any]) -> Dict[str, Any]:
        raw = self._chat(IMPROVEMENTS_SYSTEM_PROMPT, improvements_prompt(analysis), 0.4, 1500)
        return parse_improvements_response(raw)

    def list_models(self) -> List[str]:
        client = self.get_client()
        try:
            page = client.models.list()
        except (openai.APIConnectionError, httpx.TimeoutException) as e:
            raise ComplianceServiceError(f"Failed to fetch available models: {e}") from e
        except openai.APIError as e:
            raise ComplianceServiceError(f"Failed to fetch available models: {e}") from e
        return [m.id for m in page.data]


def build_analyzer(app_config) -> OpenAIComplianceService:
    return OpenAIComplianceService(
        api_key=app_config.get("IO_INTELLIGENCE_API_KEY", ""),
        base_url=app_config.get("IO_INTELLIGENCE_BASE_URL"),
        model=app_config.get("IO_INTELLIGENCE_MODEL", ""),
        timeout=app_config.get("LLM_TIMEOUT_SECONDS", 120),
    )
