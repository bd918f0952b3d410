"""Service for building summarization prompts."""

from dataclasses import dataclass
from typing import List, Optional

from ..core.config import config
from ..models import VideoMetadata
from ..utils.logging import get_logger

logger = get_logger("prompt_service")

DEFAULT_PROMPT = """You are a specialized assistant for creating comprehensive video summaries from subtitles. The subtitles have been automatically generated by YouTube and may contain transcription errors, especially with technical terms, software names, and specialized vocabulary.

## Task

Create a concise yet comprehensive summary of the video based on the provided subtitles.

## Handling Transcription Errors

- Correct obvious transcription errors based on context and your domain knowledge
- Pay special attention to technical terms, software names, programming languages, and IDE plugins which are frequently misrecognized
- If multiple interpretations are possible, choose the most likely one based on the video's context

## Output Structure

```
## Summary
[Write a comprehensive summary of the main topic and key message]

## Key points
- [Key point 1]
- [Key point 2]
- [Additional key points...]

## Technical terms
- **[[Term 1]]**: [Explanation of term 1]
- **[[Term 2]]**: [Explanation of term 2]
- [Additional terms as needed...]

## Conclusion
[Write a brief conclusion]
```

Note: Include all sections. If there are no technical terms, omit that section entirely."""

METADATA_PROMPT_TEMPLATE = """I need you to create a comprehensive summary of a YouTube video based only on its metadata.

## Video Metadata
- Title: {title}
- Author: {author}
- Channel: {channel_url}
- Published: {publish_date}
- Tags: {tags}

## Video Description
{description}

## Task
Based on the title, description, tags, and other metadata, create a comprehensive summary of what this video likely contains.
Since no transcript is available, use your knowledge about the topic and the video creator to make educated inferences.

Your summary should:
1. Identify the main topic of the video
2. Outline likely key points based on the description and tags
3. Mention relevant technologies or concepts referenced in the metadata
4. Clearly indicate that this summary is based on metadata only, not on the actual video content

Please structure your response in markdown format with appropriate sections, including a summary, key points, and related concepts."""


@dataclass
class NamedPrompt:
    """A saved prompt template."""
    id: str
    name: str
    prompt_text: str


class PromptService:
    """
    Holds the active prompt and builds the text handed to a summarization backend.

    A selected saved prompt wins over the custom prompt; an unknown selection
    falls back to the custom prompt.
    """

    def __init__(
        self,
        custom_prompt: Optional[str] = None,
        saved_prompts: Optional[List[NamedPrompt]] = None,
        selected_prompt_id: Optional[str] = None
    ):
        self.saved_prompts: List[NamedPrompt] = list(saved_prompts or [])
        self.selected_prompt_id = selected_prompt_id
        self._update_active_prompt(custom_prompt or config.summary.custom_prompt or DEFAULT_PROMPT)

    def _update_active_prompt(self, custom_prompt: str) -> None:
        if self.selected_prompt_id:
            selected = self.get_prompt_by_id(self.selected_prompt_id)
            if selected:
                self.active_prompt = selected.prompt_text
                return
            logger.warning(f"Selected prompt '{self.selected_prompt_id}' not found, using custom prompt")
        self.active_prompt = custom_prompt

    def get_prompt_by_id(self, prompt_id: str) -> Optional[NamedPrompt]:
        for prompt in self.saved_prompts:
            if prompt.id == prompt_id:
                return prompt
        return None

    def get_all_prompts(self) -> List[NamedPrompt]:
        return list(self.saved_prompts)

    def set_active_prompt_by_id(self, prompt_id: str) -> bool:
        """Make a saved prompt active. Returns False if no prompt has that ID."""
        prompt = self.get_prompt_by_id(prompt_id)
        if prompt is None:
            return False
        self.active_prompt = prompt.prompt_text
        self.selected_prompt_id = prompt_id
        return True

    def update_prompt_configuration(
        self,
        custom_prompt: Optional[str] = None,
        saved_prompts: Optional[List[NamedPrompt]] = None,
        selected_prompt_id: Optional[str] = None
    ) -> None:
        self.saved_prompts = list(saved_prompts or [])
        self.selected_prompt_id = selected_prompt_id
        self._update_active_prompt(custom_prompt or config.summary.custom_prompt or DEFAULT_PROMPT)

    def build_prompt(self, transcript_text: str) -> str:
        return f"{self.active_prompt}\n\nTranscript:\n{transcript_text}"

    def build_metadata_prompt(self, metadata: VideoMetadata) -> str:
        """Prompt for a summary inferred from metadata when there are no captions."""
        return METADATA_PROMPT_TEMPLATE.format(
            title=metadata.title,
            author=metadata.author,
            channel_url=metadata.channel_url,
            publish_date=metadata.publish_date,
            tags=", ".join(sorted(metadata.tags)),
            description=metadata.description,
        )
