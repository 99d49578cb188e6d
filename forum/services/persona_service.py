import asyncio
import logging
import os
from typing import List, Optional
import httpx
from jinja2 import Environment, FileSystemLoader
from forum.core import config
from forum.models.graph import Persona, PersonaResponse, PERSONA_ORDER
from forum.services.personas import PERSONAS, fallback_responses

logger = logging.getLogger(__name__)

MIN_RESPONSE_LENGTH = 10

GENERATION_CONFIG = {
    "maxOutputTokens": 500,
    "temperature": 0.7,
    "candidateCount": 1,
}

templates_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")
prompt_env = Environment(loader=FileSystemLoader(templates_dir), autoescape=False)


def render_persona_prompt(persona: Persona, prompt: str) -> str:
    profile = PERSONAS[persona]
    template = prompt_env.get_template("persona_prompt.j2")
    return template.render(system_prompt=profile.system_prompt, prompt=prompt, persona=profile.name.value)


def build_branch_prompt(parent_text: str, follow_up: Optional[str] = None) -> str:
    template = prompt_env.get_template("branch_context.j2")
    return template.render(parent_text=parent_text, follow_up=follow_up)


class PersonaService:
    """Fans a prompt out to the three personas and always returns three responses.

    Upstream errors, timeouts and degenerate completions are replaced by the
    persona's fallback text; nothing is raised to the caller. Without an API
    key no request is made at all.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.GEMINI_MODEL,
        base_url: str = config.GEMINI_API_BASE,
        timeout: float = config.GEMINI_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        if self.api_key:
            logger.info(f"Gemini API key configured for PersonaService ({len(self.api_key)} characters)")
        else:
            logger.warning("GEMINI_API_KEY not configured, will use fallback responses")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate_responses(self, prompt: str) -> List[PersonaResponse]:
        if not self.configured:
            logger.warning("GEMINI_API_KEY not configured, using personality fallback responses")
            return fallback_responses(prompt)

        logger.info(f"Generating personality responses for prompt: \"{prompt[:50]}...\"")
        responses = await asyncio.gather(*(self._generate_for(persona, prompt) for persona in PERSONA_ORDER))
        return list(responses)

    async def generate_branch(self, parent_text: str, follow_up: Optional[str] = None) -> List[PersonaResponse]:
        return await self.generate_responses(build_branch_prompt(parent_text, follow_up))

    async def _generate_for(self, persona: Persona, prompt: str) -> PersonaResponse:
        profile = PERSONAS[persona]
        try:
            text = await self._request(render_persona_prompt(persona, prompt))
        except Exception as e:
            logger.error(f"{persona.value} personality API call failed: {e}")
            return profile.fallback_response(prompt)

        cleaned = (text or "").strip()
        if len(cleaned) < MIN_RESPONSE_LENGTH:
            logger.warning(f"Short or empty response from {persona.value} personality")
            return profile.fallback_response(prompt)

        logger.debug(f"Generated {persona.value} response: {cleaned[:100]}...")
        return PersonaResponse(persona=persona, text=cleaned, color=profile.color)

    async def _request(self, full_prompt: str) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": full_prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        }
        response = await self.client.post(url, headers={"x-goog-api-key": self.api_key}, json=payload)
        response.raise_for_status()
        data = response.json()
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)

    async def close(self):
        await self.client.aclose()
