import random
from typing import Dict, List, Optional

# ==========================================
# Starter Prompt Templates
# ==========================================
# "_" marks a blank the user fills in before sending.

PROMPT_TEMPLATES = [
    {
        "category": "Layers",
        "items": [
            {"label": "Create solid layer", "prompt": 'Create a solid layer named "_" with color #FF0000, comp-sized'},
            {"label": "Create text layer",
             "prompt": 'Create a text layer that says "_" in Arial at 72px, centered in comp'},
            {"label": "Create shape layer",
             "prompt": "Create a shape layer with a _ (rectangle/ellipse/star) centered in comp"},
            {"label": "Create adjustment layer", "prompt": "Create an adjustment layer at the top of the layer stack"},
            {"label": "Create null + parent",
             "prompt": 'Create a null object named "_" and parent all selected layers to it'},
        ],
    },
    {
        "category": "Animation",
        "items": [
            {"label": "Fade in", "prompt": "Animate selected layer opacity from 0% to 100% over _ seconds with ease"},
            {"label": "Scale bounce",
             "prompt": "Add a bouncy scale animation to selected layer from 0% to 100% over _ seconds"},
            {"label": "Slide in from left",
             "prompt": "Animate selected layer position sliding in from off-screen left over _ seconds"},
            {"label": "Rotate full turn", "prompt": "Rotate selected layer 360 degrees over _ seconds"},
            {"label": "Typewriter reveal",
             "prompt": "Create a typewriter text reveal on selected text layer over _ seconds"},
            {"label": "Stagger layers", "prompt": "Offset selected layers by _ frames each to create a stagger effect"},
        ],
    },
    {
        "category": "Effects",
        "items": [
            {"label": "Gaussian Blur", "prompt": "Add Gaussian Blur to selected layer with blurriness of _ pixels"},
            {"label": "Drop Shadow",
             "prompt": "Add Drop Shadow to selected layer with opacity 75%, distance 5, softness 10"},
            {"label": "Glow", "prompt": "Add a Glow effect to selected layer with radius _ and intensity _"},
            {"label": "Color correction",
             "prompt": "Add Hue/Saturation effect to selected layer and shift hue by _ degrees"},
        ],
    },
    {
        "category": "Utility",
        "items": [
            {"label": "Duplicate + offset",
             "prompt": "Duplicate selected layer _ times, each offset _ pixels to the right"},
            {"label": "Rename sequentially", "prompt": 'Rename all layers sequentially as "_01", "_02", "_03", etc.'},
            {"label": "Trim to work area", "prompt": "Trim all layers in/out points to match the work area"},
            {"label": "Random positions", "prompt": "Scatter selected layers to random positions within the comp bounds"},
            {"label": "Center anchor points", "prompt": "Center the anchor point of all selected layers"},
            {"label": "Select all by type", "prompt": "Select all _ layers (text/shape/solid/null) in the comp"},
        ],
    },
]

PROMPT_TIPS = [
    'Tip: Be specific. "Create a red solid named BG" works better than "make a layer"',
    'Tip: Reference layers by name, e.g. "Fade in Title over 2 seconds"',
    'Tip: Include values, e.g. "Blur at 15px" instead of "add some blur"',
    'Tip: Specify timing, e.g. "Scale from 0% to 100% over 1.5 seconds with ease"',
    'Tip: Chain actions, e.g. "Create a text layer, add a drop shadow, and fade it in"',
]

COMP_HINT = "Your comp has {count} layer(s). Reference them by name for precise results."
NO_COMP_HINT = "Enable composition context to let the AI see your layers and write smarter scripts."


def get_categories() -> List[str]:
    return [group["category"] for group in PROMPT_TEMPLATES]


def get_templates(category: Optional[str] = None) -> List[Dict[str, str]]:
    """Flattened templates, each tagged with its category."""
    return [
        dict(item, category=group["category"])
        for group in PROMPT_TEMPLATES
        if category is None or group["category"] == category
        for item in group["items"]
    ]


def find_template(label: str) -> Optional[Dict[str, str]]:
    for template in get_templates():
        if template["label"].lower() == label.lower():
            return template
    return None


def random_tip(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(PROMPT_TIPS)


def comp_hint(layer_count: int) -> str:
    if layer_count > 0:
        return COMP_HINT.format(count=layer_count)
    return NO_COMP_HINT
