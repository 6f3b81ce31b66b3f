"""
skills/builtin/image_generation.py — Image Generation Skill

Generates n images (one request per image), announces the work to the
user, sends the images as one adaptive card, and returns a short
confirmation for the planner. n <= 0 is treated as 1.
"""

from __future__ import annotations

from typing import ClassVar

from observability.logger import get_logger
from skills.base import SkillBase
from skills.types import ParamSpec, SkillManifest, SkillResult

log = get_logger(__name__)


class ImageGenerationSkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="generate_images",
        description="Generate images from descriptions.",
        category="media",
        parameters=(
            ParamSpec("prompt", "string", "The description of the images to be generated"),
            ParamSpec(
                "n", "integer",
                "The number of images to generate. If not specified, use 1",
                required=False, default=1,
            ),
        ),
        timeout_seconds=300,
    )

    def __init__(self, context=None, image_client=None) -> None:
        super().__init__(context)
        self._images = image_client

    async def execute(self, prompt: str, n: int = 1, **kwargs) -> SkillResult:
        call_id = kwargs.get("_skill_call_id", "")
        if n is None or n <= 0:
            n = 1

        await self.notify(f'Generating {n} images with the description "{prompt}"...')

        urls: list[str] = []
        for i in range(n):
            urls.append(await self._images.generate_image(prompt))
            log.debug("image_generation.image_ready", index=i + 1, total=n)

        card = self.context.assembler.image_card(urls)
        await self.notify(self.context.assembler.assemble("", [card]))

        return SkillResult.ok(
            skill_name=self.manifest.name,
            skill_call_id=call_id,
            output=f"{n} images were generated successfully and already sent to user.",
            attachments=tuple(urls),
        )
