"""AI vision extraction using the Claude API.

Pages whose type benefits from visual reading (plans, sections,
elevations) are rendered to PNG and sent to Claude together with a
page-type-specific prompt. The JSON reply is mapped back into a
PartialResult that merges like any text parser's output.
"""
import base64
import io
import json
import re
from typing import Any, Callable, Dict, List, Optional

from PIL import Image

from .config import ScanConfig
from .models import (
    FloorSpec, HardwareItem, Opening, PageType, PartialResult, RoofSpec,
    SteelMember, StructuralMember, WallSegment,
)


class AIExtractionError(Exception):
    """The vision service failed or returned something that isn't JSON."""


SYSTEM_PROMPT = (
    "You are a construction plan analysis expert. Always respond with valid JSON only. "
    "No markdown, no explanation - just the JSON object."
)


# =============================================================================
# PROMPTS
# =============================================================================

PROMPTS: Dict[PageType, str] = {
    PageType.FLOOR_PLAN: """You are an expert construction estimator analyzing a floor plan drawing.
Extract ALL framing-relevant data from this construction floor plan image. Return a JSON object with:

{
  "wallSegments": [
    { "wallType": "A or B etc if marked", "length": feet_decimal, "room": "room name", "direction": "N/S/E/W" }
  ],
  "openings": [
    { "mark": "D1 or W1 etc", "category": "door or window", "width": feet, "height": feet, "wallType": "A etc" }
  ],
  "rooms": [
    { "name": "Room Name", "width": feet, "length": feet }
  ],
  "dimensions": [
    { "value": feet_decimal, "context": "what this dimension describes" }
  ],
  "notes": ["any relevant text notes on this page"]
}

Be precise with dimensions. Convert all measurements to decimal feet. Include every dimension callout visible.
If a wall type letter is circled near a wall, include it. If you cannot read a value, set it to null.
Return ONLY the JSON object, no other text.""",

    PageType.SECTION_DETAIL: """You are an expert construction estimator analyzing a building section or detail drawing.
Extract ALL framing members and structural components visible. Return a JSON object with:

{
  "members": [
    { "size": "2x6 or LVL 3.5x11.875 etc", "type": "stud|joist|rafter|header|beam|plate|blocking|column", "spacing": OC_inches_or_null, "zone": "roof|wall|floor", "description": "brief context" }
  ],
  "steelMembers": [
    { "shape": "W8x31 or HSS4x4 etc", "type": "beam|column|brace", "description": "context" }
  ],
  "hardware": [
    { "type": "holdDown|hanger|hurricaneTie|strap|anchor", "model": "Simpson model if visible", "description": "context" }
  ],
  "assemblies": [
    { "name": "Wall Type A etc", "layers": ["description of each layer from exterior to interior"] }
  ],
  "notes": ["any relevant text callouts"]
}

Be precise with lumber sizes. Include doubled members (e.g., "DBL 2x12" or "2-2x10").
Return ONLY the JSON object, no other text.""",

    PageType.STRUCTURAL_PLAN: """You are an expert construction estimator analyzing a structural/framing plan.
Extract ALL structural members, beams, columns, and framing layout. Return a JSON object with:

{
  "beams": [
    { "size": "LVL 3.5x11.875 or W8x31 etc", "span": feet, "location": "description", "type": "wood|steel|engineered" }
  ],
  "columns": [
    { "size": "4x4 or HSS4x4x1/4 etc", "height": feet_or_null, "location": "description", "type": "wood|steel" }
  ],
  "joists": [
    { "size": "2x10 etc", "spacing": OC_inches, "span": feet, "direction": "N-S or E-W", "area": "description" }
  ],
  "bearingWalls": [
    { "location": "description", "wallType": "letter if marked" }
  ],
  "hardware": [
    { "type": "hanger|holdDown|post_base|beam_seat", "model": "Simpson model", "quantity": number_or_null, "size": "member size" }
  ],
  "notes": ["any relevant text notes"]
}

Include ALL beam sizes with their spans. Note every steel member. Return ONLY the JSON object.""",

    PageType.ROOF_PLAN: """You are an expert construction estimator analyzing a roof framing plan.
Extract ALL roof framing data. Return a JSON object with:

{
  "sections": [
    { "name": "Main Roof etc", "ridgeLength": feet, "span": feet, "pitch": "X/12", "rafterSize": "2x8 etc", "rafterSpacing": OC_inches }
  ],
  "hips": [
    { "length": feet, "rafterSize": "size" }
  ],
  "valleys": [
    { "length": feet, "rafterSize": "size" }
  ],
  "trusses": [
    { "type": "description", "spacing": OC_inches, "span": feet, "quantity": number }
  ],
  "sheathing": { "type": "OSB or plywood", "thickness": "1/2 etc" },
  "notes": ["any relevant text notes"]
}

Include all pitch callouts. Note ridge board sizes if visible. Return ONLY the JSON object.""",

    PageType.ELEVATION: """You are an expert construction estimator analyzing a building elevation drawing.
Extract height and material information. Return a JSON object with:

{
  "heights": [
    { "description": "plate height, ridge height, etc", "value": feet_decimal }
  ],
  "materials": [
    { "type": "siding|roofing|trim", "description": "material callout" }
  ],
  "pitches": [
    { "value": "X/12", "location": "which roof section" }
  ],
  "notes": ["any relevant text notes"]
}

Return ONLY the JSON object.""",
}

AI_PAGE_TYPES = list(PROMPTS)


def build_prompt(page_type: PageType, supplementary_text: str = "") -> str:
    """Prompt for a page type, with the page's extracted text appended when given."""
    prompt = PROMPTS.get(page_type)
    if prompt is None:
        raise AIExtractionError(f"No AI prompt for page type: {page_type.value}")
    if supplementary_text:
        prompt += "\n\nAdditional text extracted from this page:\n" + supplementary_text
    return prompt


# =============================================================================
# IMAGE PREPARATION
# =============================================================================

def resize_image_if_needed(png_bytes: bytes, max_dimension: int = 7000, verbose: bool = False) -> bytes:
    """Downscale a PNG so neither side exceeds max_dimension."""
    with Image.open(io.BytesIO(png_bytes)) as img:
        width, height = img.size

        if width <= max_dimension and height <= max_dimension:
            return png_bytes

        if width > height:
            new_width = max_dimension
            new_height = int(height * (max_dimension / width))
        else:
            new_height = max_dimension
            new_width = int(width * (max_dimension / height))

        resized = img.resize((new_width, new_height), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        resized.save(buffer, format="PNG")

    if verbose:
        print(f"    Resized image from {width}x{height} to {new_width}x{new_height}")
    return buffer.getvalue()


def encode_image_to_base64(png_bytes: bytes, max_dimension: int = 7000, verbose: bool = False) -> str:
    """Encode PNG bytes to base64, resizing if needed."""
    data = resize_image_if_needed(png_bytes, max_dimension, verbose)
    return base64.standard_b64encode(data).decode("utf-8")


# =============================================================================
# VISION CLIENT
# =============================================================================

class VisionClient:
    """
    Claude vision client for page extraction.

    The API key comes from the ScanConfig (or ANTHROPIC_API_KEY); it is
    resolved once when the client is built and never cached elsewhere.
    """

    def __init__(self, config: ScanConfig):
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package required. Install with: pip install anthropic")

        api_key = config.resolve_api_key()
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self.config = config
        self._anthropic = anthropic
        self._client = anthropic.Anthropic(api_key=api_key)

    def extract(self, image_png: bytes, page_type: PageType, supplementary_text: str = "") -> Dict[str, Any]:
        """
        Send a page image to Claude and return the parsed JSON reply.

        Args:
            image_png: Rendered page as PNG bytes
            page_type: Page type selecting the prompt
            supplementary_text: Text extracted from the page

        Returns:
            Parsed JSON object

        Raises:
            AIExtractionError: API failure or a reply without parseable JSON
        """
        prompt = build_prompt(page_type, supplementary_text)
        image_data = encode_image_to_base64(image_png, self.config.max_image_dimension, self.config.verbose)

        try:
            message = self._client.messages.create(
                model=self.config.ai_model,
                max_tokens=self.config.ai_max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/png",
                                    "data": image_data,
                                },
                            },
                            {
                                "type": "text",
                                "text": prompt
                            }
                        ],
                    }
                ],
            )
        except self._anthropic.APIError as e:
            raise AIExtractionError(f"Claude API error: {e}") from e

        response_text = message.content[0].text if message.content else ""
        return _extract_json(response_text)


def _extract_json(response_text: str) -> Dict:
    """Extract the JSON object from a Claude response text."""
    try:
        code_block = re.search(r'```(?:json)?\s*(\{[\s\S]*?\})\s*```', response_text)
        if code_block:
            return json.loads(code_block.group(1))

        json_match = re.search(r'\{[\s\S]*\}', response_text)
        if json_match:
            return json.loads(json_match.group())

    except json.JSONDecodeError as e:
        raise AIExtractionError(f"Failed to parse AI response as JSON: {response_text[:200]}") from e

    raise AIExtractionError(f"No JSON in AI response: {response_text[:200]}")


# =============================================================================
# RESULT MAPPING
# =============================================================================

STEEL_SHAPE = re.compile(r"^(W|HSS|C|L)\d", re.IGNORECASE)


def _num(value: Any) -> Optional[float]:
    """Coerce an AI-reported number (possibly a string or null) to float."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _spacing(value: Any) -> Optional[int]:
    number = _num(value)
    return int(number) if number else None


def _entries(ai_result: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = ai_result.get(key)
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def map_floor_plan_result(ai_result: Dict[str, Any], page_number: Optional[int] = None) -> PartialResult:
    partial = PartialResult()

    for seg in _entries(ai_result, "wallSegments"):
        length = _num(seg.get("length"))
        if length and length > 0:
            partial.wall_segments.append(WallSegment(
                wall_type=seg.get("wallType") or None,
                length=length,
                room=seg.get("room") or "",
                page=page_number,
            ))

    for o in _entries(ai_result, "openings"):
        category = o.get("category") or "door"
        partial.openings.append(Opening(
            mark=o.get("mark") or "",
            category=category,
            width=_num(o.get("width")) or 3.0,
            height=_num(o.get("height")) or 6.67,
            sill_height=3.0 if category == "window" else 0.0,
            wall_type=o.get("wallType") or None,
        ))

    return partial


# Member type -> (size override, spacing override)
_MEMBER_OVERRIDES = {
    "stud": ("exterior_wall_stud_size", "exterior_wall_spacing"),
    "joist": ("floor_joist_size", "floor_joist_spacing"),
    "rafter": ("rafter_size", "rafter_spacing"),
}


def map_section_detail_result(ai_result: Dict[str, Any], page_number: Optional[int] = None) -> PartialResult:
    partial = PartialResult()

    for m in _entries(ai_result, "members"):
        member_type = m.get("type") or "unknown"
        size = m.get("size") or ""
        partial.structural_members.append(StructuralMember(
            type=member_type, size=size, location=m.get("description") or ""
        ))

        spacing = _spacing(m.get("spacing"))
        if member_type in _MEMBER_OVERRIDES and size and spacing:
            size_key, spacing_key = _MEMBER_OVERRIDES[member_type]
            partial.spec_overrides[size_key] = size.lower()
            partial.spec_overrides[spacing_key] = spacing

    for s in _entries(ai_result, "steelMembers"):
        partial.steel_members.append(SteelMember(
            type=s.get("type") or "beam", shape=s.get("shape") or "", location=s.get("description") or ""
        ))

    for h in _entries(ai_result, "hardware"):
        partial.hardware.append(HardwareItem(
            type=h.get("type") or "unknown", model=h.get("model") or "", location=h.get("description") or ""
        ))

    return partial


def map_structural_plan_result(ai_result: Dict[str, Any], page_number: Optional[int] = None) -> PartialResult:
    partial = PartialResult()

    for b in _entries(ai_result, "beams"):
        size = b.get("size") or ""
        span = _num(b.get("span"))
        if STEEL_SHAPE.match(size):
            partial.steel_members.append(SteelMember(type="beam", shape=size, span=span, location=b.get("location") or ""))
        else:
            partial.structural_members.append(StructuralMember(type="beam", size=size, span=span, location=b.get("location") or ""))

    for c in _entries(ai_result, "columns"):
        size = c.get("size") or ""
        height = _num(c.get("height"))
        if STEEL_SHAPE.match(size):
            partial.steel_members.append(SteelMember(type="column", shape=size, height=height, location=c.get("location") or ""))
        else:
            partial.structural_members.append(StructuralMember(type="column", size=size, span=height, location=c.get("location") or ""))

    for j in _entries(ai_result, "joists"):
        partial.floor_specs.append(FloorSpec(
            area=j.get("area") or "Floor",
            joist_size=j.get("size"),
            spacing=_spacing(j.get("spacing")),
            span=_num(j.get("span")),
        ))

    for h in _entries(ai_result, "hardware"):
        quantity = _num(h.get("quantity"))
        partial.hardware.append(HardwareItem(
            type=h.get("type") or "hanger",
            model=h.get("model") or "",
            size=h.get("size") or None,
            quantity=int(quantity) if quantity else None,
        ))

    return partial


def map_roof_plan_result(ai_result: Dict[str, Any], page_number: Optional[int] = None) -> PartialResult:
    partial = PartialResult()
    for s in _entries(ai_result, "sections"):
        partial.roof_specs.append(RoofSpec(
            section=s.get("name") or "Roof",
            rafter_size=s.get("rafterSize") or "2x8",
            spacing=_spacing(s.get("rafterSpacing")) or 24,
            pitch=s.get("pitch") or "6/12",
            ridge_length=_num(s.get("ridgeLength")) or 0.0,
            span=_num(s.get("span")) or 0.0,
        ))
    return partial


def map_elevation_result(ai_result: Dict[str, Any], page_number: Optional[int] = None) -> PartialResult:
    partial = PartialResult()
    # The last reported pitch wins
    for p in _entries(ai_result, "pitches"):
        if p.get("value"):
            partial.spec_overrides["roof_pitch"] = p["value"]
    return partial


AI_RESULT_MAPPERS: Dict[PageType, Callable[[Dict[str, Any], Optional[int]], PartialResult]] = {
    PageType.FLOOR_PLAN: map_floor_plan_result,
    PageType.SECTION_DETAIL: map_section_detail_result,
    PageType.STRUCTURAL_PLAN: map_structural_plan_result,
    PageType.ROOF_PLAN: map_roof_plan_result,
    PageType.ELEVATION: map_elevation_result,
}


def map_ai_result(ai_result: Dict[str, Any], page_type: PageType, page_number: Optional[int] = None) -> PartialResult:
    """Map a vision JSON reply into a PartialResult (empty for unsupported page types)."""
    mapper = AI_RESULT_MAPPERS.get(page_type)
    if mapper is None or not isinstance(ai_result, dict):
        return PartialResult()
    return mapper(ai_result, page_number)
