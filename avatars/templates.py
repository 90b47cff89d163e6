"""Avatar style templates and prompt composition."""
from typing import Dict

from avatars.models import GenerationParams, StyleTemplate


DESCRIPTION_PLACEHOLDER = "{description}"


# ---------- Style templates ----------
NOTION_TEMPLATE = StyleTemplate(
    name="notion",
    vision_instruction=(
        "Describe this person for a Notion-style avatar. Focus on: gender presentation, "
        "face shape (round/oval/etc), exact hairstyle details (length, texture, how it falls), "
        "glasses if any (shape and size), key facial features (eyes, eyebrows, nose, lips), "
        "and overall expression. Be specific about features that make them uniquely recognizable."
    ),
    vision_max_tokens=1000,
    prompt_template=(
        "Create a single, minimalist avatar in a clean, modern black and white illustration style. "
        "The image should be a portrait of a person based on this description: {description}\n"
        "\n"
        "STYLE REQUIREMENTS:\n"
        "1. Pure black lines on white background\n"
        "2. Clean, crisp lines with no gradients\n"
        "3. Minimalist aesthetic but with enough detail to be recognizable\n"
        "4. Face should be centered in a square frame\n"
        "5. Include distinctive features like glasses, facial hair, or hairstyle if mentioned\n"
        "6. Simple, elegant composition\n"
        "\n"
        "The final result should be a single portrait in a square frame, not multiple variations "
        "or a grid of faces. Create just ONE avatar that looks professional and elegant."
    ),
    params=GenerationParams(size="1024x1024", quality="hd", style="vivid"),
)

LINE_ART_TEMPLATE = StyleTemplate(
    name="line-art",
    vision_instruction=(
        "Describe this person so an illustrator can draw a simple black line-art avatar. "
        "Cover: face shape, hairstyle (length, parting, volume, fringe), glasses (frame shape), "
        "facial hair, eyebrow shape and expression. Keep it to plain physical facts, "
        "no clothing or background."
    ),
    vision_max_tokens=500,
    prompt_template=(
        "Draw one hand-drawn style avatar portrait of this person: {description}\n"
        "\n"
        "LINE WORK:\n"
        "- Uniform, medium-weight black outlines\n"
        "- No sketchy strokes, hatching or cross-hatching\n"
        "\n"
        "COLOR:\n"
        "- Only pure black (#000000) and pure white (#FFFFFF)\n"
        "- No gray, no gradients, no shading, no shadows\n"
        "\n"
        "FRAMING:\n"
        "- Head and top of shoulders only, centered, facing forward\n"
        "- Plain white background filling the whole square canvas\n"
        "\n"
        "FEATURES:\n"
        "- Hair drawn as a single solid black shape\n"
        "- Eyes as small simple dots or short lines\n"
        "- Glasses as clean thin outlines when present"
    ),
    reinforcement=(
        "FINAL CRITICAL INSTRUCTIONS:\n"
        "- Do NOT draw any border, frame, circle or box around the portrait\n"
        "- Hair MUST be filled solid black\n"
        "- Keep facial features minimal: no nostrils, no teeth, no wrinkles\n"
        "- Exactly ONE face in the image"
    ),
    params=GenerationParams(size="1024x1024", quality="hd", style="natural"),
)

MINIMAL_TEMPLATE = StyleTemplate(
    name="minimal",
    vision_instruction=(
        "In two or three sentences, describe this person's hairstyle, face shape, "
        "glasses if any, and most recognizable feature."
    ),
    vision_max_tokens=300,
    prompt_template=(
        "A minimal flat avatar of a person: {description}\n"
        "Black strokes on a white background, no shading, very few lines, "
        "centered head and shoulders in a square composition, a single portrait."
    ),
    params=GenerationParams(size="1024x1024", quality="standard", style="natural"),
)

STYLE_TEMPLATES: Dict[str, StyleTemplate] = {
    template.name: template
    for template in (NOTION_TEMPLATE, LINE_ART_TEMPLATE, MINIMAL_TEMPLATE)
}

DEFAULT_STYLE = NOTION_TEMPLATE.name


def get_style_template(name: str) -> StyleTemplate:
    """
    Look up a style template by name.

    Raises:
        KeyError: If no template has that name
    """
    try:
        return STYLE_TEMPLATES[name]
    except KeyError:
        raise KeyError(f"Unknown avatar style '{name}'. Available: {', '.join(sorted(STYLE_TEMPLATES))}")


def compose_prompt(description: str, template: StyleTemplate) -> str:
    """
    Build the image-generation prompt for a description.

    The description replaces the template's placeholder verbatim; the
    reinforcement block, when the template has one, follows after a blank line.
    """
    prompt = template.prompt_template.replace(DESCRIPTION_PLACEHOLDER, description, 1)
    if template.reinforcement:
        prompt = f"{prompt}\n\n{template.reinforcement}"
    return prompt
