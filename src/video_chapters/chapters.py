from __future__ import annotations

import logging
from typing import Any

from .config import DEFAULT_GENERATION_MODEL
from .errors import GenerationError, ReplicateError, ValidationError
from .replicate_client import ReplicateClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a YouTube SEO expert. Generate ONLY YouTube chapter timestamps - nothing else.

CRITICAL RULES:
1. **TIMESTAMPS ONLY**: Return ONLY the chapter list. NO explanations, NO rationale, NO extra text before or after.
2. **ACCURACY**: Use ONLY timestamps that exist in the transcript. NEVER create timestamps beyond the video length.
3. **STRICT FORMAT**: ALWAYS use "MM:SS Title" format with leading zeros (00:00, 00:19, 01:12, 03:45, etc.)
4. **SEO OPTIMIZATION**: Use keywords viewers search for

TIMESTAMP FORMAT RULES (CRITICAL):
- ALWAYS use leading zeros: 00:05, 00:19, 01:12, 03:45, 04:16
- NEVER use: 0:05, 0:19, 1:12, 3:45, 4:16
- YouTube requires consistent MM:SS format with leading zeros

TITLE RULES:
- Action verbs: "How to...", "Why...", "The Secret to...", "Discover..."
- Specific outcomes: "How to Find Low-Stress Jobs" not "About Jobs"
- Concise: 3-7 words max
- NO generic titles like "Introduction", "Overview"

CORRECT EXAMPLES:
00:00 Intro: The Burnout Trap
00:19 What Are 'Lazy Girl Jobs'?
01:12 The Strategy: Outcomes vs. Hours
04:16 How to Automate Your Job Search

INCORRECT (DO NOT USE):
0:00 Intro: The Burnout Trap ❌ (missing leading zero)
0:19 What Are 'Lazy Girl Jobs'? ❌ (missing leading zero)
1:12 The Strategy ❌ (missing leading zero)
4:16 Automate Search ❌ (missing leading zero)

STRUCTURAL STEPS:
1. Identify video's main promise/hook
2. Find 3-5 key topic shifts in transcript
3. Extract exact timestamps for each shift
4. Create 5-8 chapters total (based on video length)

OUTPUT FORMAT (RETURN ONLY THIS, NOTHING ELSE):
00:00 [Title]
00:XX [Title]
01:XX [Title]
...

DO NOT include any text except the chapter list. No "Based on", no "Rationale:", no explanations."""

PROMPT_TEMPLATE = (
    "Here is the video transcript with timestamps:\n\n"
    "{transcript}\n\n"
    "Generate ONLY the chapter timestamps. NO other text."
)


def build_prompt(transcript: str) -> str:
    return PROMPT_TEMPLATE.format(transcript=transcript)


def join_output(output: Any) -> str:
    """Reassemble model output that may arrive as streamed string fragments."""

    if isinstance(output, str):
        return output
    if isinstance(output, (list, tuple)):
        return "".join(str(fragment) for fragment in output if fragment is not None)
    raise GenerationError("Failed to generate chapters", details="Model returned no text output")


class ChapterGenerator:
    """Client that turns a timestamped transcript into a YouTube chapter list."""

    def __init__(
        self,
        *,
        client: ReplicateClient | None = None,
        api_token: str | None = None,
        model: str = DEFAULT_GENERATION_MODEL,
        max_tokens: int = 1024,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.client = client or ReplicateClient(api_token=api_token)
        self.model = model
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

    def generate(self, transcript: str) -> str:
        if not isinstance(transcript, str) or not transcript.strip():
            raise ValidationError("Transcript is required")

        logger.info("Transcript length: %d", len(transcript))
        logger.debug("First 500 chars: %s", transcript[:500])

        model_input = {
            "system_prompt": self.system_prompt,
            "prompt": build_prompt(transcript),
            "max_tokens": self.max_tokens,
        }
        try:
            output = self.client.run(self.model, model_input)
        except ReplicateError as exc:
            raise GenerationError(
                "Failed to generate chapters", details=str(exc) or exc.__class__.__name__
            ) from exc

        return join_output(output)
