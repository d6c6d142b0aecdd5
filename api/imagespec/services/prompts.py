from typing import Dict, List

IMAGE_SPEC_SYSTEM = """You are a JSON generator. The user gives a natural-language image prompt.
Your job: produce ONLY a single valid JSON object (no surrounding markdown, no explanation),
matching this structure:

{
  "prompt": "<concise image generation prompt>",
  "negative_prompt": "<optional>",
  "style": "<style tags>",
  "lighting": "<lighting description>",
  "camera": "<camera description>",
  "details": {
    "subject": "<main subject>",
    "background": "<background>",
    "mood": "<mood>",
    "colors": "<color hints>"
  },
  "params": {
    "engine": "<stable|mid|dalle>",
    "resolution": "WIDTHxHEIGHT",
    "cfg_scale": <number>,
    "steps": <number>,
    "sampler": "<sampler name>",
    "seed": null
  }
}

Rules:
- MUST output only JSON object, valid and parseable.
- Use concise, comma-separated clauses in "prompt".
- If a field is unknown, set it to an empty string or null.
- Do NOT include any commentary, explanation, markdown code fences, or trailing text.

Your entire response must be valid JSON that starts with { and ends with }"""

CONVERSION_GOAL = "Convert to image-generation JSON for pipelines (Stable Diffusion / Midjourney / DALL·E)"


def compose_user_message(prompt: str, engine: str) -> str:
    return (
        f"User Prompt: {prompt}\n"
        "\n"
        "Preferences:\n"
        f"- engine: {engine}\n"
        f"- goal: {CONVERSION_GOAL}\n"
    )


def build_messages(prompt: str, engine: str) -> List[Dict[str, str]]:
    """Chat messages for the provider: fixed system instruction, then the user turn."""
    return [
        {"role": "system", "content": IMAGE_SPEC_SYSTEM},
        {"role": "user", "content": compose_user_message(prompt, engine)},
    ]
