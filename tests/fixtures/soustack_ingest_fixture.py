"""Minimal ingest provider used by the test-suite.

Chunks are blank-line separated blocks; the first line of a block is its
title, `- item` lines under `Ingredients:` are ingredients and numbered lines
under `Instructions:` are steps.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

_STEP_PREFIX = re.compile(r"^\d+[.)]\s*")


def _resolve_text(value):
    return value if isinstance(value, str) else value["text"]


def normalize(value):
    return _resolve_text(value).replace("\r\n", "\n").strip()


def segment(value, options=None):
    if isinstance(value, str):
        text, resolved_options = value, options
    else:
        text, resolved_options = value["text"], value.get("options")

    lines = text.split("\n")
    chunks = []
    start_line = None
    first_line = ""

    def flush(end_line):
        nonlocal start_line, first_line
        if start_line is None:
            return
        chunk = {"startLine": start_line, "endLine": end_line, "confidence": 0.95}
        if first_line:
            chunk["titleGuess"] = first_line
            chunk["evidence"] = first_line
        chunks.append(chunk)
        start_line = None
        first_line = ""

    for index, line in enumerate(lines):
        line_number = index + 1
        if not line.strip():
            flush(line_number - 1)
            continue
        if start_line is None:
            start_line = line_number
            first_line = line.strip()
    flush(len(lines))

    max_chunks = (resolved_options or {}).get("maxChunks")
    if max_chunks is not None:
        return {"chunks": chunks[:max_chunks]}
    return {"chunks": chunks}


def extract(chunk, lines):
    body = [line.strip() for line in lines[chunk["startLine"] - 1 : chunk["endLine"]]]
    title = chunk.get("titleGuess") or (body[0] if body else "Untitled")

    ingredients, instructions = [], []
    section = None
    for line in body:
        lowered = line.lower()
        if lowered.startswith("ingredients"):
            section = "ingredients"
        elif lowered.startswith("instructions"):
            section = "instructions"
        elif section == "ingredients" and line.startswith("-"):
            ingredients.append(line.lstrip("- ").strip())
        elif section == "instructions" and line:
            instructions.append(_STEP_PREFIX.sub("", line))

    return {
        "title": title,
        "ingredients": ingredients,
        "instructions": instructions,
        "source": {
            "startLine": chunk["startLine"],
            "endLine": chunk["endLine"],
            "evidence": title,
        },
    }


def to_soustack(intermediate, options=None):
    options = options or {}
    return {
        "name": intermediate["title"],
        "ingredients": list(intermediate["ingredients"]),
        "instructions": list(intermediate["instructions"]),
        "x-ingest": {
            "sourcePath": options.get("sourcePath"),
            "source": intermediate.get("source"),
        },
    }


def ingest(request):
    input_path = Path(request["inputPath"])
    if not input_path.is_file():
        return {"ok": False, "errors": [f"Input not found: {input_path}"]}

    text = normalize(input_path.read_text(encoding="utf-8"))
    lines = text.split("\n")
    recipes = []
    for chunk in segment(text)["chunks"]:
        intermediate = extract(chunk, lines)
        recipe = to_soustack(intermediate, {"sourcePath": str(input_path)})
        recipes.append({"name": recipe["name"], "recipe": recipe})

    max_recipes = request.get("maxRecipes")
    if max_recipes is not None:
        recipes = recipes[:max_recipes]

    result = {"ok": True, "recipes": recipes if request.get("returnRecipes") else []}
    if request.get("emitFiles") and request.get("outDir"):
        result["emitted"] = _emit(Path(request["outDir"]), recipes)
    return result


def validate(recipe):
    if isinstance(recipe, dict) and isinstance(recipe.get("name"), str):
        return {"ok": True, "errors": []}
    return {"ok": False, "errors": ["Recipe name is required."]}


def _emit(out_dir, recipes):
    recipes_dir = out_dir / "recipes"
    recipes_dir.mkdir(parents=True, exist_ok=True)
    index = []
    for entry in recipes:
        file_name = re.sub(r"[^a-z0-9]+", "-", entry["name"].lower()).strip("-") + ".json"
        (recipes_dir / file_name).write_text(json.dumps(entry["recipe"]), encoding="utf-8")
        index.append(file_name)
    index_path = out_dir / "index.json"
    index_path.write_text(json.dumps(index), encoding="utf-8")
    return {
        "outDir": str(out_dir),
        "indexPath": str(index_path),
        "recipesDir": str(recipes_dir),
        "count": len(index),
    }


default = {
    "normalize": normalize,
    "segment": segment,
    "validate": validate,
}
