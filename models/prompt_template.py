from typing import Dict, List, Optional

from models.base import ApiModel


class PromptTemplate(ApiModel):
    id: str
    label: str
    description: Optional[str] = None
    body: str
    defaults: Dict[str, str] = {}

    def build(self, variables: Optional[Dict[str, str]] = None) -> str:
        values = {**self.defaults, **{k: v for k, v in (variables or {}).items() if v}}
        return " ".join(self.body.format(**values).split())


class PromptRenderRequest(ApiModel):
    variables: Dict[str, str] = {}


class PromptRenderResponse(ApiModel):
    template_id: str
    prompt: str


PROMPT_TEMPLATES: List[PromptTemplate] = [
    PromptTemplate(
        id="retro_synthwave",
        label="Retro Synthwave",
        description="Neon grid, glowing sun, 80s retro-futuristic design",
        body="""
A high-quality synthwave t-shirt design featuring {subject}.
Vibrant neon grid, retro sun with glowing rays, deep purples and pinks,
crisp vector lines, 1980s vaporwave aesthetic, centered composition.
""",
        defaults={"subject": "a silhouetted mountain"},
    ),
    PromptTemplate(
        id="cute_animal",
        label="Cute Animal Mascot",
        description="Kawaii-style animal for stickers or apparel",
        body="""
A super cute kawaii-style {animal} mascot illustration.
Soft pastel colors, rounded shapes, big expressive eyes,
clean outlines, perfect for stickers or t-shirts.
""",
        defaults={"animal": "cat"},
    ),
    PromptTemplate(
        id="vintage_badge",
        label="Vintage Badge Logo",
        description="Outdoor / adventure / retro badge",
        body="""
A vintage outdoor badge logo design featuring {theme}.
Distressed texture, bold outlines, retro color palette,
perfect for apparel prints and patches.
""",
        defaults={"theme": "a mountain landscape"},
    ),
    PromptTemplate(
        id="minimalist_line",
        label="Minimalist Line Art",
        description="Elegant single-line drawing",
        body="""
A minimalist single-line continuous drawing of {subject}.
Clean vector lines, elegant curves, modern aesthetic,
perfect for tote bags, apparel, and prints.
""",
        defaults={"subject": "a flower"},
    ),
    PromptTemplate(
        id="gaming_character",
        label="Gaming Character",
        description="Epic mascot for esports / gaming shirts",
        body="""
A powerful esports mascot illustration of {character}.
Dynamic pose, sharp highlights, glowing accents, bold outlines,
designed for gaming apparel.
""",
        defaults={"character": "a cyber ninja"},
    ),
]


def find_template(template_id: str) -> Optional[PromptTemplate]:
    return next((t for t in PROMPT_TEMPLATES if t.id == template_id), None)
