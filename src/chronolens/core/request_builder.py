"""Construction of transformation requests for the remote image model.

Every request the pipeline sends is a short natural-language instruction
assembled from fixed clauses:

- **Subject clause**: what to do (travel to an era, apply a custom edit,
  restore damage, inpaint a masked region)
- **Style clause**: one fixed description per ImageStyle
- **Quality clause**: resolution tier base text combined with a detail
  description chosen from the detail-level slider

The two quality axes are independent: resolution picks the base text and
detail level (0-100) picks the texture description, and both always
appear in the clause.

All functions here are pure. They never raise and never perform I/O;
unrecognized configuration values fall back to defaults.

Usage Example
-------------
    >>> settings = TransformationSettings(ImageStyle.CINEMATIC, Resolution.HIGH, 85)
    >>> request = build_time_travel_request(Era.VIKING, settings)
    >>> request.label
    'Viking Age'
"""

from __future__ import annotations

from dataclasses import dataclass

from .images import EncodedImage
from .presets import (
    DEFAULT_DETAIL_LEVEL,
    HIGH_DETAIL_THRESHOLD,
    SOFT_DETAIL_THRESHOLD,
    AnalysisMode,
    Era,
    ImageStyle,
    Resolution,
    coerce_detail_level,
)

RESTORED_LABEL = "Restored Photo"
CUSTOM_EDIT_LABEL = "Custom Reality"
MASK_EDIT_LABEL = "Magic Edit"

STYLE_CLAUSES: dict[ImageStyle, str] = {
    ImageStyle.REALISTIC: "Photorealistic, natural lighting, sharp focus, true to life colors.",
    ImageStyle.CINEMATIC: (
        "Cinematic lighting, dramatic atmosphere, movie still quality, color graded, "
        "widescreen aspect ratio."
    ),
    ImageStyle.VINTAGE: (
        "Vintage film grain, sepia tones, slightly faded, daguerreotype style, "
        "authentic period look."
    ),
    ImageStyle.PAINTING: (
        "Oil painting style, visible brushstrokes, classical art composition, "
        "textured canvas look."
    ),
    ImageStyle.CYBER: (
        "Neon lighting, high contrast, glowing accents, futuristic aesthetic, "
        "cybernetic details."
    ),
    ImageStyle.SKETCH: (
        "Charcoal sketch, pencil lines, artistic shading, monochrome, hand-drawn style."
    ),
    ImageStyle.STUDIO: (
        "Professional studio lighting, softbox, neutral background, high key, "
        "perfect portrait."
    ),
    ImageStyle.STEAMPUNK: (
        "Steampunk aesthetic, brass gears, copper accents, steam-powered machinery "
        "background, victorian industrial style."
    ),
    ImageStyle.ART_DECO: (
        "Art Deco style, geometric patterns, gold and black color palette, lavish 1920s "
        "luxury, symmetrical composition."
    ),
    ImageStyle.RETRO_FUTURISM: (
        "Retro-futurism, 1950s atomic age sci-fi, chrome surfaces, flying cars, "
        "vibrant colors, space age optimism."
    ),
}

RESOLUTION_CLAUSES: dict[Resolution, str] = {
    Resolution.STANDARD: "Standard resolution.",
    Resolution.HIGH: "High quality, detailed, sharp focus.",
    Resolution.ULTRA_4K: "4K resolution, ultra sharp, highly detailed, masterful quality.",
}

SOFT_DETAIL_CLAUSE = "soft edges, smooth textures, dreamy quality"
BALANCED_DETAIL_CLAUSE = "balanced details"
HIGH_DETAIL_CLAUSE = (
    "intricate micro-details, hyper-realistic textures, extremely sharp edges, high fidelity"
)

ANALYSIS_PROMPTS: dict[AnalysisMode, str] = {
    AnalysisMode.CONTEXT: (
        "Analyze this image in detail. Describe the person's appearance, expression, "
        "clothing, and the setting. Provide a creative assessment of what historical era "
        "they might accidentally fit into based on their vibe."
    ),
    AnalysisMode.DAMAGE: (
        "Analyze this image specifically for physical defects, damage, and age-related "
        "degradation. Look for scratches, dust, tears, discoloration, fading, noise, "
        "blurriness, or artifacts. Provide a concise list of what needs to be repaired to "
        "restore it to pristine condition."
    ),
}

CREATIVE_PROMPT_INSTRUCTION = (
    "Act as an expert AI prompt engineer. Analyze this image and generate a high-quality, "
    "detailed text prompt that could be used to recreate this exact image using an AI image "
    "generator. Include specific details about the subject, pose, facial expression, clothing, "
    "textures, lighting, camera angle, depth of field, and overall artistic style/mood. "
    "Output ONLY the raw prompt text, no conversational filler."
)


@dataclass(frozen=True)
class TransformationSettings:
    """Shared style/quality settings applied to every item of a run."""

    style: ImageStyle = ImageStyle.REALISTIC
    resolution: Resolution = Resolution.STANDARD
    detail_level: int = DEFAULT_DETAIL_LEVEL


# Restoration ignores the user's settings
RESTORATION_SETTINGS = TransformationSettings(ImageStyle.REALISTIC, Resolution.HIGH, 80)


@dataclass(frozen=True)
class TransformationRequest:
    """One fully specified remote transformation.

    Attributes
    ----------
    label : str
        Label given to the result (era name, "Custom Reality", ...)
    prompt : str
        Complete instruction text sent with the source image
    mask : EncodedImage | None
        Binary PNG mask for inpainting requests
    """

    label: str
    prompt: str
    mask: EncodedImage | None = None


def style_clause(style: object) -> str:
    """Fixed descriptive clause for a style; unknown styles read as photorealistic."""
    return STYLE_CLAUSES[ImageStyle.coerce(style)]


def detail_clause(detail_level: object) -> str:
    level = coerce_detail_level(detail_level)
    if level < SOFT_DETAIL_THRESHOLD:
        return SOFT_DETAIL_CLAUSE
    if level > HIGH_DETAIL_THRESHOLD:
        return HIGH_DETAIL_CLAUSE
    return BALANCED_DETAIL_CLAUSE


def quality_clause(resolution: object, detail_level: object) -> str:
    """Combine the resolution base clause with the detail description."""
    base = RESOLUTION_CLAUSES[Resolution.coerce(resolution)]
    return f"{base} Ensure the image has {detail_clause(detail_level)}."


def _settings_clauses(settings: TransformationSettings) -> str:
    return f"{style_clause(settings.style)} {quality_clause(settings.resolution, settings.detail_level)}"


def build_time_travel_request(era: Era, settings: TransformationSettings) -> TransformationRequest:
    """Request that places the subject in ``era`` while keeping their likeness."""
    era_name = era.value if isinstance(era, Era) else str(era)
    prompt = (
        f"Transform this image into a scene from the {era_name}. "
        f"Keep the person's facial features and likeness exactly as they are in the original "
        f"photo, but change their clothing and the background to match the {era_name}. "
        f"{_settings_clauses(settings)}"
    )
    return TransformationRequest(label=era_name, prompt=prompt)


def build_custom_edit_request(
    instruction: str,
    settings: TransformationSettings,
    label: str = CUSTOM_EDIT_LABEL,
) -> TransformationRequest:
    """Request applying a free-text instruction plus the style/quality clauses."""
    text = (instruction or "").strip().rstrip(".")
    return TransformationRequest(label=label, prompt=f"{text}. {_settings_clauses(settings)}")


def build_restoration_request(damage_report: str) -> TransformationRequest:
    """Request repairing the defects listed in ``damage_report``."""
    report = (damage_report or "").strip() or "general wear and age-related degradation"
    instruction = (
        f"Restore this photograph to perfection. Fix the following issues: {report}. "
        "Remove all scratches, tears, noise, and blur. Enhance clarity and sharpness. "
        "Ensure colors are natural and vibrant"
    )
    return build_custom_edit_request(instruction, RESTORATION_SETTINGS, label=RESTORED_LABEL)


def build_mask_edit_request(instruction: str, mask: EncodedImage) -> TransformationRequest:
    """Inpainting request: replace the white area of ``mask`` per ``instruction``."""
    prompt = (
        "You are an expert image editor. I have provided two images.\n"
        "1. The original image.\n"
        "2. A mask image where the white area indicates the specific region to edit.\n\n"
        "Task: Edit the original image by changing the content of the masked area to match "
        f"this instruction: '{(instruction or '').strip()}'.\n\n"
        "Rules:\n"
        "- Seamlessly blend the edited area with the surrounding pixels (inpainting).\n"
        "- Do NOT modify any part of the image that corresponds to the black area of the mask.\n"
        "- Maintain the lighting, perspective, and quality of the original image."
    )
    return TransformationRequest(label=MASK_EDIT_LABEL, prompt=prompt, mask=mask)


def analysis_prompt(mode: object) -> str:
    """Instruction text for an analysis request; unknown modes analyze context."""
    if isinstance(mode, str):
        mode = mode.strip().upper()
    try:
        return ANALYSIS_PROMPTS[AnalysisMode(mode)]
    except ValueError:
        return ANALYSIS_PROMPTS[AnalysisMode.CONTEXT]
