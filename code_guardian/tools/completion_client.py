"""Text completion client backed by the Claude Agent SDK."""

import asyncio
from typing import List, Optional

from claude_agent_sdk import (
    ClaudeSDKClient,
    ClaudeAgentOptions,
    ClaudeSDKError,
    AssistantMessage,
    TextBlock,
    ResultMessage,
)

from ..config import GuardianConfig
from ..errors import TransportFailure
from ..utils import get_logger


DEFAULT_SYSTEM_PROMPT = """You are CodeGuardian, an expert code reviewer.
Answer with exactly the JSON object the user asks for."""


class CompletionClient:
    """
    Sends one prompt to the model and returns its text.

    No tools are enabled and every call is a single query. Failures to reach
    the service, error results and timeouts all surface as TransportFailure;
    the text itself is returned untouched for the decoder.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        max_turns: int = 1,
        timeout_seconds: Optional[float] = None,
    ):
        self.model = model
        self.max_turns = max_turns
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger()

    @classmethod
    def from_config(cls, config: GuardianConfig) -> "CompletionClient":
        return cls(
            model=config.model,
            max_turns=config.max_turns,
            timeout_seconds=config.timeout_seconds,
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        task: Optional[str] = None,
    ) -> str:
        """
        Run one completion.

        Args:
            prompt: User prompt
            system_prompt: Overrides the default system prompt
            task: Task name, used in logs and errors

        Returns:
            The model's text output

        Raises:
            TransportFailure: The service is unreachable, refused the request
                or did not answer within the timeout
        """
        label = task or "completion"
        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(
                    self._run(prompt, system_prompt, label),
                    timeout=self.timeout_seconds,
                )
            return await self._run(prompt, system_prompt, label)
        except asyncio.TimeoutError:
            raise TransportFailure(
                f"AI service did not answer within {self.timeout_seconds:.0f}s", task=task
            ) from None
        except ClaudeSDKError as e:
            raise TransportFailure(f"AI service unavailable: {e}", task=task) from e

    async def _run(self, prompt: str, system_prompt: Optional[str], label: str) -> str:
        options = ClaudeAgentOptions(
            system_prompt=system_prompt or DEFAULT_SYSTEM_PROMPT,
            model=self.model,
            allowed_tools=[],
            max_turns=self.max_turns,
        )

        chunks: List[str] = []
        async with ClaudeSDKClient(options=options) as client:
            await client.query(prompt)

            async for message in client.receive_response():
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            chunks.append(block.text)

                elif isinstance(message, ResultMessage):
                    self.logger.debug(f"[{label}] completed in {message.duration_ms}ms")
                    if message.is_error:
                        detail = getattr(message, "result", None) or message.subtype
                        raise TransportFailure(f"AI service returned an error: {detail}", task=label)

        text = "".join(chunks)
        if not text.strip():
            self.logger.warning(f"[{label}] AI service returned an empty response")
        return text
