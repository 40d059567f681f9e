"""LLM prompt templates for translation, nutrition estimation and recipe generation."""

INVALID_MARKER = "INVALID"

TRANSLATION_SYSTEM_PROMPT = f"""You are a Vietnamese cooking ingredient translator.

First decide whether the input is a real, edible cooking ingredient.
- Reject gibberish, non-food items, dishes and brand names.
- Accept Vietnamese with or without diacritics, and English.

If the input is NOT a valid ingredient, respond with exactly: {INVALID_MARKER}

Otherwise respond ONLY with valid JSON:
{{
  "english": "lowercase-hyphenated english name",
  "general": "lowercase-hyphenated general form",
  "category": "meat" | "seafood" | "vegetable" | "fruit" | "grain" | "spice" | "sauce" | "dairy" | "other"
}}

Examples:
- "thịt ba chỉ" → {{"english": "pork-belly", "general": "pork", "category": "meat"}}
- "hành lá" → {{"english": "scallion", "general": "onion", "category": "vegetable"}}
- "asdfgh" → {INVALID_MARKER}"""


def get_translation_prompt(ingredient: str) -> str:
    """Generate prompt for translating a single ingredient."""
    return f"""Translate this ingredient: "{ingredient}"

Respond with JSON only, or {INVALID_MARKER}."""


NUTRITION_SYSTEM_PROMPT = """You are a nutrition database. Estimate typical nutrition values per 100g of raw ingredient.

Respond ONLY with valid JSON using numbers (no units):
{
  "calories": number,
  "protein": number,
  "carbs": number,
  "fat": number,
  "fiber": number
}"""


def get_nutrition_prompt(canonical_english: str) -> str:
    """Generate prompt for estimating nutrition of an ingredient."""
    name = canonical_english.replace("-", " ")
    return f"""Estimate nutrition per 100g for: "{name}"

Respond with JSON only."""


MEAL_TYPE_LABELS = {
    "breakfast": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snack": "a snack",
}

GENERATION_SYSTEM_PROMPT = """You are a professional Vietnamese chef. You create one home-style Vietnamese dish from the ingredients a user has on hand.

Before writing the recipe, check whether all ingredients can be combined.
If some ingredient does not fit (e.g. sweet fruit such as watermelon with savory meat):
- leave it out of the recipe
- list it in incompatibleIngredients
- explain why in compatibilityNote
- suggest searching for it separately in separateSearchSuggestion

Respond ONLY with valid JSON matching this schema (exactly ONE recipe):
{
  "analysis": {
    "compatibleIngredients": ["chicken", "scallion"],
    "incompatibleIngredients": ["watermelon"],
    "compatibilityNote": "Watermelon does not suit a savory dish",
    "separateSearchSuggestion": "Look for a dessert with watermelon"
  },
  "recipes": [{
    "name": "Gà Xào Sả Ớt",
    "description": "Vietnamese description of the dish",
    "usedIngredients": ["chicken", "scallion", "lemongrass"],
    "ingredients": [
      {"name": "chicken", "vietnameseName": "Thịt gà", "amount": "500", "unit": "g", "importance": "required"},
      {"name": "fish-sauce", "vietnameseName": "Nước mắm", "amount": "2", "unit": "tbsp", "importance": "required"},
      {"name": "garlic", "vietnameseName": "Tỏi", "amount": "3", "unit": "tép", "importance": "optional"}
    ],
    "steps": [
      {"stepNumber": 1, "instruction": "Vietnamese instruction", "duration": 5}
    ],
    "cookingTime": 30,
    "difficulty": "easy" | "medium" | "hard",
    "servings": number
  }]
}

Rules:
1. name, description and step instructions are in Vietnamese
2. ingredients.name is English, lowercase-hyphenated (e.g. "fish-sauce"). For the user's ingredients, copy the English name given in the request exactly
3. ingredients.vietnameseName is the Vietnamese display name
4. importance is "required" for main ingredients, "optional" for seasonings
5. usedIngredients lists the English names actually used in the dish
6. Return JSON only, no explanations"""


def get_generation_prompt(
    ingredients: list[str],
    servings: int,
    meal_type: str,
    max_cooking_time: int,
    disliked_ingredients: list[str] | None = None,
    preferred_cooking_methods: list[str] | None = None,
    skill_level: str | None = None,
    display_names: dict[str, str] | None = None,
) -> str:
    """Generate prompt for a single recipe suggestion.

    Ingredients are canonical English names; display_names maps them to the
    user's original wording.
    """
    requirements = [f"{servings} servings", f"cooking time at most {max_cooking_time} minutes"]
    meal_label = MEAL_TYPE_LABELS.get(meal_type)
    if meal_label:
        requirements.append(f"suitable for {meal_label}")
    methods = [m for m in (preferred_cooking_methods or []) if m and m != "none"]
    if methods:
        requirements.append(f"cooking methods: {'/'.join(methods)}")
    if disliked_ingredients:
        requirements.append(f"avoid: {', '.join(disliked_ingredients)}")
    if skill_level:
        requirements.append(f"skill level: {skill_level}")

    display_names = display_names or {}
    listed = [
        f"{name} ({display_names[name]})" if display_names.get(name) else name
        for name in ingredients
    ]
    prompt = f"""Create the single best Vietnamese dish from these ingredients: {", ".join(listed)}

Use these exact English names in ingredients.name and usedIngredients: {", ".join(ingredients)}

Requirements: {"; ".join(requirements)}"""
    if methods:
        prompt += (
            f"\n\nPrefer the cooking method(s) {', '.join(methods)} even if the dish "
            f"takes longer than {max_cooking_time} minutes."
        )
    prompt += f"\n\nSet servings to {servings}. Respond with JSON only."
    return prompt
