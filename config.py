"""
Runtime settings read from the environment (.env supported)
"""
import os
from dataclasses import dataclass, field
from typing import Dict

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


DEFAULT_MODELS = {
    'chatgpt': 'gpt-4o-mini',
    'claude': 'claude-3-haiku-20240307',
    'gemini': 'gemini-2.5-flash-lite',
    'perplexity': 'llama-3.1-sonar-small-128k-online',
    'grok': 'grok-2-1212',
}


@dataclass
class Settings:
    openai_api_key: str = ''
    anthropic_api_key: str = ''
    google_api_key: str = ''
    perplexity_api_key: str = ''
    xai_api_key: str = ''
    enabled: Dict[str, bool] = field(default_factory=dict)
    models: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))
    database_url: str = 'sqlite:///revintel.db'
    request_timeout: float = 120.0
    context_window: int = 200
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Settings':
        models = dict(DEFAULT_MODELS)
        for platform in models:
            override = os.getenv(f'{platform.upper()}_MODEL')
            if override:
                models[platform] = override

        return cls(
            openai_api_key=os.getenv('OPENAI_API_KEY', ''),
            anthropic_api_key=os.getenv('ANTHROPIC_API_KEY', ''),
            google_api_key=os.getenv('GOOGLE_API_KEY', ''),
            perplexity_api_key=os.getenv('PERPLEXITY_API_KEY', ''),
            xai_api_key=os.getenv('XAI_API_KEY', ''),
            enabled={
                'chatgpt': _flag('ENABLE_CHATGPT'),
                'claude': _flag('ENABLE_CLAUDE'),
                'gemini': _flag('ENABLE_GEMINI'),
                'perplexity': _flag('ENABLE_PERPLEXITY'),
                # Grok is rate limited hard on the free tier
                'grok': _flag('ENABLE_GROK', default=False),
            },
            models=models,
            database_url=os.getenv('DATABASE_URL', 'sqlite:///revintel.db'),
            request_timeout=float(os.getenv('REQUEST_TIMEOUT', '120')),
            context_window=int(os.getenv('CONTEXT_WINDOW', '200')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    def api_key_for(self, platform: str) -> str:
        return {
            'chatgpt': self.openai_api_key,
            'claude': self.anthropic_api_key,
            'gemini': self.google_api_key,
            'perplexity': self.perplexity_api_key,
            'grok': self.xai_api_key,
        }.get(platform, '')

    def active_platforms(self):
        """Platforms that are both enabled and have a key configured."""
        return [p for p in DEFAULT_MODELS if self.enabled.get(p, True) and self.api_key_for(p)]


def get_settings() -> Settings:
    return Settings.from_env()
