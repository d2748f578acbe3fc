"""
Portfolio Tracker
Executive narrative generator.

Turns an executive report document into a short written status summary via
a pluggable LLM provider. The generator is constructed explicitly and handed
to ``ReportAssembler``; nothing here is a module-level singleton.

Providers:
    - OpenAIProvider   — chat completions (``openai`` package, lazy import)
    - LocalStubProvider — deterministic text for development and tests

Usage:
    from portfolio_tracker.ai.narrative import NarrativeGenerator, OpenAIProvider
    generator = NarrativeGenerator(OpenAIProvider(api_key), model="gpt-4o-mini")
    text = generator.generate(executive_report)
"""

import logging
from abc import ABC, abstractmethod

from portfolio_tracker.core.exceptions import NarrativeGenerationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an executive project analyst writing C-level status reports. "
    "Prioritize revenue at risk, resource bottlenecks and concrete asks with "
    "named owners. Be specific and use the figures provided."
)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class NarrativeProvider(ABC):
    """Abstract interface for chat-completion providers."""

    name = "abstract"

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(NarrativeProvider):
    """OpenAI chat completions provider."""

    name = "openai"

    def __init__(self, api_key: str = ""):
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise RuntimeError("openai package not installed. Run: pip install openai")
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=kwargs.get("temperature", 0.7),
            max_tokens=kwargs.get("max_tokens", 2000),
        )
        return {
            "content": response.choices[0].message.content,
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "model": model,
        }


# ── Local stub ────────────────────────────────────────────────────────────────

class LocalStubProvider(NarrativeProvider):
    """Offline provider: echoes the headline figures without calling an API."""

    name = "local"

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        prompt = messages[-1]["content"] if messages else ""
        headline = next(
            (line for line in prompt.splitlines() if line.startswith("PORTFOLIO:")),
            "PORTFOLIO: no data",
        )
        content = (
            "## Executive Summary (offline draft)\n\n"
            f"{headline.replace('PORTFOLIO:', '').strip()}\n\n"
            "Configure an AI provider for a full narrative."
        )
        return {
            "content": content,
            "prompt_tokens": len(prompt.split()),
            "completion_tokens": len(content.split()),
            "model": model,
        }


PROVIDERS = {
    "openai": OpenAIProvider,
    "local": LocalStubProvider,
}


def build_report_prompt(report: dict) -> str:
    """Condense an executive report document into the user prompt."""
    health = report.get("project_health", {})
    capacity = report.get("capacity_analysis", {})
    period = report.get("report_period", {})

    lines = [
        "Create an executive status report. For each project give RISK, ASK and IMPACT.",
        "",
        (
            f"PORTFOLIO: {health.get('total_projects', 0)} active projects "
            f"({health.get('red_projects', 0)} red, {health.get('yellow_projects', 0)} yellow, "
            f"{health.get('green_projects', 0)} green); "
            f"ARR at risk ${health.get('arr_at_risk', 0):,} of ${health.get('total_arr', 0):,}; "
            f"utilization {capacity.get('utilization_percentage', 0)}%"
        ),
        f"PERIOD: {period.get('start_date')} to {period.get('end_date')}",
        "",
        "PROJECTS:",
    ]
    for bucket in ("red", "yellow", "green"):
        for project in health.get("projects_by_health", {}).get(bucket, []):
            owners = ", ".join(
                name for name in (project.get("tier_1_name"), project.get("tier_2_name")) if name
            ) or "Unassigned"
            arr_k = (project.get("arr_value") or 0) / 1000
            lines.append(
                f"- {project.get('project_name')} | health={project.get('health')} | "
                f"ARR=${arr_k:.1f}K | close={project.get('close_date') or 'TBD'} | "
                f"owners={owners} | note={project.get('latest_note') or 'No recent notes'}"
            )

    tiers = capacity.get("tier_breakdown", {})
    tier_lines = [
        f"Tier {key[-1]}: {tier['utilization_percentage']}% "
        f"({tier['active_users']} active of {tier['total_users']})"
        for key, tier in sorted(tiers.items())
        if tier.get("total_users")
    ]
    if tier_lines:
        lines += ["", "CAPACITY BY TIER:"] + tier_lines
    return "\n".join(lines)


class NarrativeGenerator:
    """Wraps a provider with the prompt and generation settings."""

    def __init__(self, provider: NarrativeProvider, *, model: str,
                 temperature: float = 0.7, max_tokens: int = 2000):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate(self, report: dict) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_report_prompt(report)},
        ]
        try:
            result = self.provider.chat(
                messages, self.model,
                temperature=self.temperature, max_tokens=self.max_tokens,
            )
        except Exception as exc:
            logger.error("Narrative provider %s failed: %s", self.provider.name, exc)
            raise NarrativeGenerationError(
                "Failed to generate AI report", report="ai",
            ) from exc

        logger.info(
            "Narrative generated provider=%s model=%s tokens=%s/%s",
            self.provider.name, result.get("model"),
            result.get("prompt_tokens"), result.get("completion_tokens"),
        )
        return result["content"]


def create_narrative_generator(config) -> NarrativeGenerator:
    """Build the generator described by app config (``AI_PROVIDER`` etc.)."""
    provider_name = config.get("AI_PROVIDER", "openai")
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise ValueError(f"Unknown AI_PROVIDER: {provider_name!r}")
    if provider_cls is OpenAIProvider:
        provider = OpenAIProvider(api_key=config.get("OPENAI_API_KEY", ""))
    else:
        provider = provider_cls()
    return NarrativeGenerator(provider, model=config.get("AI_REPORT_MODEL", "gpt-4o-mini"))
