from __future__ import annotations

ANALYSIS_PROMPT = """
Analyze this image in extreme detail for AI image generation. Provide:

1. REGIONS: Identify all distinct regions/objects with:
   - Bounding box coordinates (x, y, width, height as percentages of the image)
   - Dominant colors (hex code, rgb triple and coverage percentage)
   - Object description (what it is) and texture description (surface, material)
   - Importance score between 0 and 1

2. GLOBAL ATTRIBUTES:
   - Art style (photorealistic, cartoon, painting style, etc.)
   - Mood/atmosphere
   - Lighting (direction, quality, color temperature)
   - Camera perspective/angle
   - Overall dominant colors

3. COMPOSITION:
   - Layout type (rule of thirds, centered, etc.)
   - Focal points (x, y coordinates as fractions of the image)
   - Visual balance
   - Depth layers ordered from foreground to background

4. GENERATION PROMPT:
   A detailed prompt that would recreate this image as closely as possible,
   covering every visual element, the style, composition, colors and atmosphere.

Return only JSON matching this structure:
{
    "regions": [
        {
            "coordinates": {"x": 0, "y": 0, "width": 0, "height": 0},
            "dominant_colors": [{"hex": "#000000", "rgb": [0, 0, 0], "percentage": 0}],
            "object_description": "",
            "texture_description": "",
            "importance_score": 0.5
        }
    ],
    "global_attributes": {
        "style": "", "mood": "", "lighting": "", "perspective": "",
        "dominant_colors": []
    },
    "composition": {
        "layout": "", "focal_points": [{"x": 0.5, "y": 0.5}], "balance": "",
        "depth_layers": []
    },
    "generation_prompt": ""
}
"""


def with_style_preset(prompt: str, style_preset: str | None) -> str:
    """Fold a style preset into the prompt for backends without a native option."""
    if not style_preset:
        return prompt
    return f"{prompt}\n\nRender in a {style_preset.replace('-', ' ')} style."
