"""Handlers for ``ai-git-wizard config <list|get|set|setup>``."""

from __future__ import annotations

import asyncio
import getpass
from typing import Callable, Optional

from .config import (
    DEFAULT_MAX_CONCURRENCY,
    ConfigKey,
    ConfigStore,
    mask_value,
    parse_concurrency,
)
from .exceptions import ConfigError
from .github import GitHubClient, TokenCheck

RESET = "\033[0m"
BOLD = "\033[1m"
BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"

CONFIG_ACTIONS = ("list", "set", "get", "setup")

KEY_CHOICES = [
    (ConfigKey.OPEN_ROUTER_API_KEY, "OpenRouter API Key"),
    (ConfigKey.GITHUB_TOKEN, "GitHub Token"),
    (ConfigKey.DEFAULT_MODEL, "Default AI Model"),
    (ConfigKey.MAX_CONCURRENCY, "Max Concurrency"),
]

MODEL_CHOICES = [
    ("google/gemini-flash-2.5", "Gemini Flash 2.5 (Recommended)"),
    ("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet"),
    ("google/gemini-flash-1.5", "Gemini Flash 1.5 (Fast)"),
    ("openai/gpt-4o-mini", "GPT-4o Mini"),
    ("openai/gpt-4o", "GPT-4o"),
]


async def _check_token(token: str) -> TokenCheck:
    async with GitHubClient(token) as client:
        return await client.test_token()


class ConfigCommands:
    """Interactive and direct configuration editing."""

    def __init__(
        self,
        store: Optional[ConfigStore] = None,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass.getpass,
        token_checker: Callable[[str], TokenCheck] = lambda t: asyncio.run(
            _check_token(t)
        ),
    ) -> None:
        self.store = store or ConfigStore()
        self._prompt = prompt
        self._secret_prompt = secret_prompt
        self._token_checker = token_checker

    def run(self, action: str, key: Optional[str], value: Optional[str]) -> int:
        if action == "list":
            return self.list()
        if action == "get":
            return self.get(key)
        if action == "set":
            return self.set(key, value)
        if action == "setup":
            return self.setup()
        raise ConfigError(
            f"Unknown config action: {action}. "
            f"Available actions: {', '.join(CONFIG_ACTIONS)}"
        )

    def list(self) -> int:
        values = self.store.list_values()
        print("📋 Current configuration:")
        if not values:
            print(
                '  No configuration found. Use "ai-git-wizard config set" '
                "to configure."
            )
            return 0
        for name, display in values.items():
            print(f"  {name}: {display}")
        return 0

    def get(self, key: Optional[str]) -> int:
        if not key:
            print("Please specify a configuration key to get")
            print("Example: ai-git-wizard config get --key openRouterApiKey")
            return 1
        config_key = ConfigKey.parse(key)
        value = self.store.get_value(config_key)
        if value is None:
            print(f"Configuration {config_key.value} is not set")
        else:
            display = mask_value(config_key, value) if config_key.is_secret else value
            print(f"{config_key.value}: {display}")
        return 0

    def _ask(self, message: str, secret: bool = False) -> str:
        while True:
            answer = (self._secret_prompt if secret else self._prompt)(message).strip()
            if answer:
                return answer
            print("Value cannot be empty")

    def _choose_key(self) -> ConfigKey:
        print("Which configuration would you like to set?")
        for idx, (_key, label) in enumerate(KEY_CHOICES, start=1):
            print(f"  {idx}. {label}")
        while True:
            answer = self._prompt("Select [1-4]: ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(KEY_CHOICES):
                return KEY_CHOICES[int(answer) - 1][0]
            try:
                return ConfigKey.parse(answer)
            except ConfigError:
                print("Please choose one of the listed options")

    def _ask_value(self, key: ConfigKey) -> str:
        while True:
            answer = self._ask(f"Enter {key.value}: ", secret=key.is_secret)
            if key is not ConfigKey.MAX_CONCURRENCY:
                return answer
            try:
                parse_concurrency(answer)
                return answer
            except ConfigError as e:
                print(str(e))

    def set(self, key: Optional[str], value: Optional[str]) -> int:
        config_key = ConfigKey.parse(key) if key else self._choose_key()
        raw = value if value else self._ask_value(config_key)
        stored = self.store.set_value(config_key, raw)
        print(
            f"{GREEN}✅ Configuration updated: {config_key.value} = "
            f"{mask_value(config_key, stored)}{RESET}"
        )
        return 0

    def _choose_model(self) -> str:
        print("🧠 Choose your preferred AI model:")
        for idx, (_model, label) in enumerate(MODEL_CHOICES, start=1):
            print(f"  {idx}. {label}")
        answer = self._prompt(f"Select [1-{len(MODEL_CHOICES)}] (default 1): ").strip()
        if not answer:
            return MODEL_CHOICES[0][0]
        if answer.isdigit() and 1 <= int(answer) <= len(MODEL_CHOICES):
            return MODEL_CHOICES[int(answer) - 1][0]
        # Any other text is taken as an OpenRouter model id.
        return answer

    def _choose_concurrency(self) -> int:
        while True:
            answer = self._prompt(
                f"⚡ Max concurrent API requests (default {DEFAULT_MAX_CONCURRENCY}): "
            ).strip()
            if not answer:
                return DEFAULT_MAX_CONCURRENCY
            try:
                return parse_concurrency(answer)
            except ConfigError as e:
                print(str(e))

    def setup(self) -> int:
        print(f"{BLUE}{BOLD}🚀 AI Git CLI Setup{RESET}")
        print("Let's configure your API keys and preferences.\n")

        api_key = self._ask("🤖 Enter your OpenRouter API key: ", secret=True)
        github_token = self._ask(
            "🐙 Enter your GitHub personal access token: ", secret=True
        )
        model = self._choose_model()
        concurrency = self._choose_concurrency()

        config = self.store.load()
        config.open_router_api_key = api_key
        config.github_token = github_token
        config.default_model = model
        config.max_concurrency = concurrency
        self.store.save(config)

        check = self._token_checker(github_token)
        if check.valid:
            print(f"{GREEN}✅ GitHub token verified for user: {check.user}{RESET}")
        else:
            print(f"{YELLOW}⚠️  GitHub token could not be verified: {check.error}{RESET}")

        print(f"{GREEN}{BOLD}\n✅ Configuration saved successfully!{RESET}")
        print("\nYou can now use ai-git-wizard to automate your workflow.")
        print("Try: ai-git-wizard commit")
        return 0
