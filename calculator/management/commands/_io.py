import json

from django.core.management.base import CommandError

from hardware.parts import as_category, normalize_part


def load_json(path, expect=dict):
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise CommandError(f'Cannot read "{path}": {exc}')
    except json.JSONDecodeError as exc:
        raise CommandError(f'"{path}" is not valid JSON: {exc}')
    if not isinstance(data, expect):
        raise CommandError(f'"{path}" must contain a JSON {expect.__name__}')
    return data


def load_build(path, stderr=None):
    """Read a ``{category: part}`` file and normalize every known part."""
    selection = {}
    for key, raw in load_json(path).items():
        category = as_category(key)
        if category is None:
            if stderr is not None:
                stderr.write(f'Ignoring unknown category "{key}"')
            continue
        if raw is None:
            continue
        selection[category] = normalize_part(raw, category)
    return selection
