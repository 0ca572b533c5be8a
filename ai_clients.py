"""
Clients for the AI chat platforms we monitor (ChatGPT, Claude, Gemini,
Perplexity, Grok). Each query returns the answer text plus token usage,
cost and any cited URLs.
"""
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import anthropic
import google.generativeai as genai
import requests
from openai import OpenAI

from config import Settings, get_settings

logger = logging.getLogger(__name__)

PLATFORMS = ['chatgpt', 'claude', 'gemini', 'perplexity', 'grok']

PLATFORM_LABELS = {
    'chatgpt': 'ChatGPT',
    'claude': 'Claude',
    'gemini': 'Gemini',
    'perplexity': 'Perplexity',
    'grok': 'Grok',
}

MAX_TOKENS = 1500
TEMPERATURE = 0

PERPLEXITY_URL = 'https://api.perplexity.ai/chat/completions'
GROK_URL = 'https://api.x.ai/v1/chat/completions'

# USD per token; first key contained in the model name wins
PRICING = {
    'chatgpt': {
        'gpt-4o-mini': (0.150 / 1_000_000, 0.600 / 1_000_000),
        'gpt-4-turbo': (0.01 / 1000, 0.03 / 1000),
        'gpt-4': (0.03 / 1000, 0.06 / 1000),
        'gpt-3.5-turbo': (0.0005 / 1000, 0.0015 / 1000),
    },
    'claude': {
        'claude-3-opus': (15 / 1_000_000, 75 / 1_000_000),
        'claude-3-sonnet': (3 / 1_000_000, 15 / 1_000_000),
        'claude-3-haiku': (0.25 / 1_000_000, 1.25 / 1_000_000),
    },
    'gemini': {
        'gemini-2.5-flash-lite': (0.10 / 1_000_000, 0.40 / 1_000_000),
        'gemini-2.5-flash': (0.30 / 1_000_000, 2.50 / 1_000_000),
        'gemini-1.5-pro': (1.25 / 1_000_000, 5 / 1_000_000),
        'gemini-1.5-flash': (0.075 / 1_000_000, 0.3 / 1_000_000),
        'gemini-pro': (0.5 / 1_000_000, 1.5 / 1_000_000),
    },
    'perplexity': {
        'llama-3.1-sonar-small-128k-online': (0.2 / 1_000_000, 0.2 / 1_000_000),
        'llama-3.1-sonar-large-128k-online': (1 / 1_000_000, 1 / 1_000_000),
        'llama-3.1-sonar-huge-128k-online': (5 / 1_000_000, 5 / 1_000_000),
    },
    'grok': {
        'grok-2-1212': (2 / 1_000_000, 10 / 1_000_000),
        'grok-2': (2 / 1_000_000, 10 / 1_000_000),
    },
}

_URL_RE = re.compile(r'https?://[^\s<>"\]]+')


class AIClientError(Exception):
    """Base class for AI platform failures."""


class UnknownPlatformError(AIClientError):
    pass


class PlatformNotConfiguredError(AIClientError):
    pass


class PlatformQueryError(AIClientError):
    pass


@dataclass
class PlatformResponse:
    platform: str
    text: str
    model: str
    citations: List[str] = field(default_factory=list)
    tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    response_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def extract_citations(text: str) -> List[str]:
    """Unique URLs in the order they first appear."""
    seen = []
    for url in _URL_RE.findall(text or ''):
        if url not in seen:
            seen.append(url)
    return seen


def calculate_cost(platform: str, model: str, input_tokens: int, output_tokens: int) -> float:
    table = PRICING.get(platform)
    if not table:
        return 0.0
    model_key = next((key for key in table if key in (model or '')), None)
    if model_key is None:
        model_key = next(iter(table))
    input_rate, output_rate = table[model_key]
    return input_tokens * input_rate + output_tokens * output_rate


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


def _query_openai(prompt: str, model: str, settings: Settings) -> PlatformResponse:
    client = OpenAI(api_key=settings.openai_api_key, timeout=settings.request_timeout)
    start = time.time()
    resp = client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
    )
    text = resp.choices[0].message.content or ''
    usage = resp.usage
    input_tokens = getattr(usage, 'prompt_tokens', 0) or 0
    output_tokens = getattr(usage, 'completion_tokens', 0) or 0
    return PlatformResponse(
        platform='chatgpt',
        text=text,
        model=resp.model or model,
        citations=extract_citations(text),
        tokens=getattr(usage, 'total_tokens', 0) or input_tokens + output_tokens,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=calculate_cost('chatgpt', model, input_tokens, output_tokens),
        response_time_ms=_elapsed_ms(start),
    )


def _query_claude(prompt: str, model: str, settings: Settings) -> PlatformResponse:
    client = anthropic.Anthropic(api_key=settings.anthropic_api_key, timeout=settings.request_timeout)
    start = time.time()
    resp = client.messages.create(
        model=model,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        messages=[{"role": "user", "content": prompt}],
    )
    text = ''
    if resp.content and getattr(resp.content[0], 'type', None) == 'text':
        text = resp.content[0].text
    input_tokens = resp.usage.input_tokens
    output_tokens = resp.usage.output_tokens
    return PlatformResponse(
        platform='claude',
        text=text,
        model=resp.model or model,
        citations=extract_citations(text),
        tokens=input_tokens + output_tokens,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=calculate_cost('claude', model, input_tokens, output_tokens),
        response_time_ms=_elapsed_ms(start),
    )


def _query_gemini(prompt: str, model: str, settings: Settings) -> PlatformResponse:
    genai.configure(api_key=settings.google_api_key)
    gemini_model = genai.GenerativeModel(model)
    start = time.time()
    resp = gemini_model.generate_content(
        prompt,
        generation_config=genai.types.GenerationConfig(
            temperature=TEMPERATURE,
            max_output_tokens=MAX_TOKENS,
        ),
    )
    text = resp.text or ''
    usage = getattr(resp, 'usage_metadata', None)
    input_tokens = getattr(usage, 'prompt_token_count', 0) or 0
    output_tokens = getattr(usage, 'candidates_token_count', 0) or 0
    return PlatformResponse(
        platform='gemini',
        text=text,
        model=model,
        citations=extract_citations(text),
        tokens=getattr(usage, 'total_token_count', 0) or input_tokens + output_tokens,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=calculate_cost('gemini', model, input_tokens, output_tokens),
        response_time_ms=_elapsed_ms(start),
    )


def _query_chat_completions_api(platform: str, url: str, api_key: str, prompt: str,
                                model: str, settings: Settings) -> PlatformResponse:
    """Perplexity and Grok both speak the OpenAI chat-completions wire format."""
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
    }
    start = time.time()
    response = requests.post(url, headers=headers, json=payload, timeout=settings.request_timeout)
    if not response.ok:
        raise PlatformQueryError(
            f"{PLATFORM_LABELS[platform]} API error: {response.status_code} - {response.text}"
        )
    data = response.json()
    choices = data.get('choices') or [{}]
    text = (choices[0].get('message') or {}).get('content') or ''
    usage = data.get('usage') or {}
    input_tokens = usage.get('prompt_tokens', 0)
    output_tokens = usage.get('completion_tokens', 0)

    # Perplexity returns its sources separately; Grok only has inline URLs
    citations = data.get('citations') or extract_citations(text)

    return PlatformResponse(
        platform=platform,
        text=text,
        model=data.get('model') or model,
        citations=list(citations),
        tokens=usage.get('total_tokens', input_tokens + output_tokens),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=calculate_cost(platform, model, input_tokens, output_tokens),
        response_time_ms=_elapsed_ms(start),
    )


def _query_perplexity(prompt: str, model: str, settings: Settings) -> PlatformResponse:
    return _query_chat_completions_api(
        'perplexity', PERPLEXITY_URL, settings.perplexity_api_key, prompt, model, settings,
    )


def _query_grok(prompt: str, model: str, settings: Settings) -> PlatformResponse:
    return _query_chat_completions_api(
        'grok', GROK_URL, settings.xai_api_key, prompt, model, settings,
    )


_DISPATCH = {
    'chatgpt': _query_openai,
    'claude': _query_claude,
    'gemini': _query_gemini,
    'perplexity': _query_perplexity,
    'grok': _query_grok,
}


def query_platform(
    platform: str,
    prompt: str,
    model: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> PlatformResponse:
    """Send one prompt to one platform."""
    if platform not in _DISPATCH:
        raise UnknownPlatformError(f"Unknown platform: {platform}")

    settings = settings or get_settings()
    if not settings.api_key_for(platform):
        raise PlatformNotConfiguredError(f"{PLATFORM_LABELS[platform]} API key not configured")

    model = model or settings.models[platform]
    try:
        return _DISPATCH[platform](prompt, model, settings)
    except AIClientError:
        raise
    except Exception as e:
        logger.error("%s query failed: %s", PLATFORM_LABELS[platform], e)
        raise PlatformQueryError(f"{PLATFORM_LABELS[platform]} query failed: {e}") from e


def query_all_platforms(
    prompt: str,
    platforms: Optional[List[str]] = None,
    settings: Optional[Settings] = None,
) -> List[PlatformResponse]:
    """
    Query several platforms in parallel. Failed platforms are logged and
    left out; the successful responses come back in platform order.
    """
    settings = settings or get_settings()
    if platforms is None:
        platforms = settings.active_platforms()
    if not platforms:
        return []

    with ThreadPoolExecutor(max_workers=len(platforms)) as executor:
        futures = [
            (platform, executor.submit(query_platform, platform, prompt, None, settings))
            for platform in platforms
        ]

    results = []
    for platform, future in futures:
        try:
            results.append(future.result())
        except AIClientError as e:
            logger.warning("Skipping %s: %s", platform, e)
    return results
