from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from llm.prompts import build_operation_prompt, build_steps_prompt

logger = logging.getLogger(__name__)

ANTHROPIC_MAX_TOKENS = 1000
DEFAULT_MODELS = {"anthropic": "claude-3-opus-20240229", "openai": "gpt-4"}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class LLMClient:
    """
    One configured model behind a provider name ("anthropic" or "openai").
    Every call returns parsed JSON; transport and parse failures raise.
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        provider: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.0,
        timeout_s: int = 30,
    ) -> None:
        self.model = model
        self.provider = provider
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self.timeout_s = timeout_s

    @property
    def model_name(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider or "", "")

    def plan_operations(self, *, planner_input: dict) -> dict:
        return self._complete(build_operation_prompt(planner_input))

    def plan_steps(self, *, planner_input: dict) -> dict:
        return self._complete(build_steps_prompt(planner_input))

    def _complete(self, prompt: dict) -> dict:
        return self._parse_json(self._call_provider(prompt=prompt))

    def _call_provider(self, *, prompt: dict) -> str:
        if self.provider == "anthropic":
            return self._call_anthropic(prompt=prompt)
        if self.provider == "openai":
            return self._call_openai(prompt=prompt)
        raise RuntimeError("LLM provider not configured")

    def _call_anthropic(self, *, prompt: dict) -> str:
        if not self.api_key:
            raise RuntimeError("ANTHROPIC_API_KEY is not set")
        import anthropic

        logger.info("LLM call start provider=anthropic model=%s", self.model_name)
        client = anthropic.Anthropic(
            api_key=self.api_key,
            base_url=self.base_url or None,
            timeout=self.timeout_s,
        )
        resp = client.messages.create(
            model=self.model_name,
            max_tokens=ANTHROPIC_MAX_TOKENS,
            temperature=self.temperature,
            system=prompt["system"],
            messages=[{"role": "user", "content": prompt["user"]}],
        )
        output_text = "\n".join(
            block.text
            for block in (resp.content or [])
            if getattr(block, "type", None) == "text" and getattr(block, "text", "")
        ).strip()
        if not output_text:
            raise RuntimeError("Anthropic returned empty content")
        logger.info("LLM call success provider=anthropic output_len=%s", len(output_text))
        return output_text

    def _call_openai(self, *, prompt: dict) -> str:
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")
        # JSON mode first; some deployments reject response_format, so retry plain.
        try:
            return self._openai_chat(prompt, json_mode=True)
        except Exception as e:
            logger.warning("LLM call failed with response_format: %s", e)
            return self._openai_chat(prompt, json_mode=False)

    def _openai_chat(self, prompt: dict, *, json_mode: bool) -> str:
        from langchain_core.messages import HumanMessage, SystemMessage
        from langchain_openai import ChatOpenAI

        logger.info(
            "LLM call start provider=openai model=%s response_format=%s",
            self.model_name,
            json_mode,
        )
        llm = ChatOpenAI(
            model=self.model_name,
            temperature=self.temperature,
            timeout=self.timeout_s,
            api_key=self.api_key,
            base_url=self.base_url or None,
            model_kwargs={"response_format": {"type": "json_object"}} if json_mode else None,
        )
        content = llm.invoke(
            [SystemMessage(content=prompt["system"]), HumanMessage(content=prompt["user"])]
        ).content
        if not content:
            raise RuntimeError("OpenAI returned empty content")
        output_text = content if isinstance(content, str) else json.dumps(content)
        logger.info("LLM call success provider=openai output_len=%s", len(output_text))
        return output_text

    def _parse_json(self, text: str) -> Dict[str, Any]:
        """Accepts bare JSON, a ```json fence, or an object embedded in prose."""
        if not isinstance(text, str) or not text.strip():
            raise ValueError("LLM returned empty response")
        fenced = _FENCE_RE.search(text)
        candidate = fenced.group(1).strip() if fenced else text.strip()
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            start, end = candidate.find("{"), candidate.rfind("}")
            if start == -1 or end <= start:
                raise
            return json.loads(candidate[start : end + 1])
