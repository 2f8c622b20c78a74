"""
AI remix client for the ABV.dev gateway.

The gateway routes the prompt to the chosen provider and records the output
as a derivative IP Asset on its side. What comes back is a text description
standing in for the generated media.
"""

import structlog
from typing import Any, Dict, Optional

import requests

from chaincapture import config
from chaincapture.core.errors import RemixError
from chaincapture.models.ip_asset import RemixRequest, RemixResult

logger = structlog.get_logger()

COST_PER_TOKEN_USD = 0.00001
DEFAULT_STYLE = "creative transformation"
SYSTEM_PROMPT = (
    "You are an AI that creates detailed descriptions for video/image remixes based on user prompts."
)

def build_remix_messages(request: RemixRequest) -> list:
    user_prompt = (
        "Create a detailed remix description for the following:\n"
        f"Original Media: {request.source_media_url}\n"
        f"Remix Style: {request.style or DEFAULT_STYLE}\n"
        f"User Prompt: {request.remix_prompt}\n\n"
        "Generate a comprehensive description that can be used to create the remixed version."
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]

class RemixClient:
    """Blocking chat-completions client; one request per remix, no streaming."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.endpoint = f"{config.ABV_BASE_URL.rstrip('/')}/v1/gateway/chat/completions"
        if not config.ABV_API_KEY:
            logger.warning("ABV_API_KEY not configured - remix requests will fail")
        logger.info("Remix client initialized", endpoint=self.endpoint, model=config.REMIX_MODEL_NAME)

    def _headers(self) -> Dict[str, str]:
        if not config.ABV_API_KEY:
            raise RemixError("ABV API key is not configured")
        return {
            "Authorization": f"Bearer {config.ABV_API_KEY}",
            "Content-Type": "application/json",
        }

    def generate(self, request: RemixRequest) -> RemixResult:
        """Send the remix prompt to the gateway and return its description."""
        payload = {
            "provider": request.model,
            "model": config.REMIX_MODEL_NAME,
            "messages": build_remix_messages(request),
            "metadata": {
                "sourceIPId": request.source_ip_id,
                "contentType": "remix",
                "attribution": "ChainCapture AI Remix",
                "parentIP": request.source_ip_id,
            },
        }

        logger.info("Requesting AI remix",
                   source_ip_id=request.source_ip_id, provider=request.model, style=request.style)

        try:
            response = self.session.post(
                self.endpoint, json=payload, headers=self._headers(), timeout=config.REMIX_TIMEOUT
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("AI gateway request failed",
                        source_ip_id=request.source_ip_id, error=str(e),
                        status_code=getattr(e.response, 'status_code', None))
            raise RemixError(f"Failed to generate AI remix: {e}") from e
        except ValueError as e:
            raise RemixError("AI gateway returned a non-JSON response") from e

        result = self._parse(body)
        logger.info("AI remix generated",
                   source_ip_id=request.source_ip_id, trace_id=result.trace_id, cost=result.cost)
        return result

    @staticmethod
    def _parse(body: Any) -> RemixResult:
        if not isinstance(body, dict):
            raise RemixError(f"AI gateway returned an unexpected {type(body).__name__} body")

        choices = body.get("choices") or []
        if not isinstance(choices, list) or not choices:
            raise RemixError("AI gateway returned no choices")
        if not isinstance(choices[0], dict) or not isinstance(choices[0].get("message") or {}, dict):
            raise RemixError("AI gateway returned a malformed choice")

        message = choices[0].get("message") or {}
        usage = body.get("usage") if isinstance(body.get("usage"), dict) else {}
        total_tokens = usage.get("total_tokens")

        return RemixResult(
            description=message.get("content") or "",
            trace_id=body.get("id"),
            cost=total_tokens * COST_PER_TOKEN_USD if total_tokens else None,
        )

    def health_check(self) -> Dict[str, Any]:
        """Configuration-only check; no tokens are spent."""
        return {
            "available": bool(config.ABV_API_KEY),
            "endpoint": self.endpoint,
            "error": None if config.ABV_API_KEY else "ABV_API_KEY not configured",
        }
