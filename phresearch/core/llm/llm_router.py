"""
LLM Router - single-provider completion dispatch
Sends one completion to the configured provider and fails fast on error
"""
import time
from typing import List, Dict, Optional, Any
import openai
from anthropic import Anthropic
import google.generativeai as genai
from groq import Groq
from loguru import logger

from phresearch.models.config import LLMConfig, LLMProvider


class LLMRouter:
    """
    Routes completions to the configured LLM provider

    Features:
    - OpenAI, OpenAI-compatible proxies, Anthropic, Groq, Gemini, OpenRouter
    - One call per request, errors propagate to the caller
    - Usage tracking
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self.request_count = 0
        self.error_count = 0
        self.last_used: Optional[float] = None

    def complete(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """Generate a completion with the configured provider"""
        if not self.config.api_key:
            raise ValueError(f"No API key configured for provider {self.config.provider.value}")

        max_tokens = max_tokens or self.config.max_tokens
        temperature = self.config.temperature if temperature is None else temperature

        try:
            response = self._call_provider(
                provider=self.config.provider,
                messages=messages,
                system_prompt=system_prompt,
                max_tokens=max_tokens,
                temperature=temperature
            )
        except Exception as e:
            self.error_count += 1
            logger.warning(f"Provider {self.config.provider.value} failed: {e}")
            raise

        self.request_count += 1
        self.last_used = time.time()
        return response

    def _call_provider(
        self,
        provider: LLMProvider,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> str:
        """Call specific provider"""
        key = self.config.api_key
        model = self.config.model_name

        if provider == LLMProvider.OPENAI:
            return self._call_openai(key, messages, system_prompt, max_tokens, temperature, model)

        elif provider == LLMProvider.ANTHROPIC:
            return self._call_anthropic(key, messages, system_prompt, max_tokens, temperature, model)

        elif provider == LLMProvider.GROQ:
            return self._call_groq(key, messages, system_prompt, max_tokens, temperature, model)

        elif provider == LLMProvider.GEMINI:
            return self._call_gemini(key, messages, system_prompt, max_tokens, temperature, model)

        elif provider == LLMProvider.OPENROUTER:
            return self._call_openrouter(key, messages, system_prompt, max_tokens, temperature, model)

        else:
            raise ValueError(f"Unknown provider: {provider}")

    def _call_openai(self, api_key: str, messages: List[Dict], system: Optional[str], max_tokens: int, temp: float, model: Optional[str] = None) -> str:
        """OpenAI (or OpenAI-compatible proxy) API call"""
        client = openai.OpenAI(api_key=api_key, base_url=self.config.base_url)

        if system:
            messages = [{"role": "system", "content": system}] + messages

        response = client.chat.completions.create(
            model=model or "gpt-4o-mini",
            messages=messages,
            max_tokens=max_tokens,
            temperature=temp
        )

        return response.choices[0].message.content

    def _call_anthropic(self, api_key: str, messages: List[Dict], system: Optional[str], max_tokens: int, temp: float, model: Optional[str] = None) -> str:
        """Anthropic API call"""
        client = Anthropic(api_key=api_key)

        response = client.messages.create(
            model=model or "claude-3-5-sonnet-20241022",
            max_tokens=max_tokens,
            temperature=temp,
            system=system or "",
            messages=messages
        )

        return response.content[0].text

    def _call_groq(self, api_key: str, messages: List[Dict], system: Optional[str], max_tokens: int, temp: float, model: Optional[str] = None) -> str:
        """Groq API call"""
        client = Groq(api_key=api_key)

        if system:
            messages = [{"role": "system", "content": system}] + messages

        response = client.chat.completions.create(
            model=model or "llama-3.1-8b-instant",
            messages=messages,
            max_tokens=max_tokens,
            temperature=temp
        )

        return response.choices[0].message.content

    def _call_gemini(self, api_key: str, messages: List[Dict], system: Optional[str], max_tokens: int, temp: float, model_name: Optional[str] = None) -> str:
        """Google Gemini API call"""
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name or 'gemini-1.5-flash')

        # Gemini takes a single prompt
        prompt = ""
        if system:
            prompt += f"System: {system}\n\n"

        for msg in messages:
            prompt += f"{msg['role'].capitalize()}: {msg['content']}\n\n"

        response = model.generate_content(
            prompt,
            generation_config=genai.types.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temp
            )
        )

        return response.text

    def _call_openrouter(self, api_key: str, messages: List[Dict], system: Optional[str], max_tokens: int, temp: float, model: Optional[str] = None) -> str:
        """OpenRouter API call"""
        client = openai.OpenAI(
            base_url="https://openrouter.ai/api/v1",
            api_key=api_key
        )

        if system:
            messages = [{"role": "system", "content": system}] + messages

        response = client.chat.completions.create(
            model=model or "openai/gpt-4o-mini",
            messages=messages,
            max_tokens=max_tokens,
            temperature=temp
        )

        return response.choices[0].message.content

    def get_statistics(self) -> Dict[str, Any]:
        """Get usage statistics"""
        return {
            "provider": self.config.provider.value,
            "model": self.config.model_name,
            "configured": bool(self.config.api_key),
            "total_requests": self.request_count,
            "total_errors": self.error_count,
            "last_used": self.last_used,
        }
