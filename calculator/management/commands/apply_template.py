import json

from django.core.management.base import BaseCommand, CommandError

from calculator.services.build_calculator import (
    BUILD_TEMPLATES,
    apply_template,
    get_template,
    part_price,
)
from hardware.parts import as_category, normalize_part, part_name

from ._io import load_build, load_json


class Command(BaseCommand):
    help = (
        "Fill a build from a parts catalog using a build template. "
        "CATALOG is a JSON object of category -> list of part records."
    )

    def add_arguments(self, parser):
        parser.add_argument("template", type=str, help="Template id")
        parser.add_argument("catalog", type=str, help="Path to the catalog JSON file")
        parser.add_argument(
            "--build",
            type=str,
            dest="build",
            help="Existing build JSON; its parts are kept",
        )
        parser.add_argument(
            "--format",
            choices=["text", "json"],
            default="text",
            dest="format",
            help="Output format",
        )

    def handle(self, *args, **options):
        template = get_template(options["template"])
        if template is None:
            known = ", ".join(t.id for t in BUILD_TEMPLATES)
            raise CommandError(
                f'Unknown template "{options["template"]}". Choose one of: {known}'
            )

        catalog = {}
        for key, items in load_json(options["catalog"]).items():
            category = as_category(key)
            if category is None or not isinstance(items, list):
                self.stderr.write(f'Ignoring catalog entry "{key}"')
                continue
            catalog[category.value] = [
                normalize_part(item, category) for item in items if isinstance(item, dict)
            ]

        selection = {}
        if options.get("build"):
            selection = load_build(options["build"], stderr=self.stderr)

        result = apply_template(template, catalog, selection=selection)

        if options["format"] == "json":
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
            return

        self.stdout.write(f"Template: {template.name}")
        if not result.picks:
            self.stdout.write("No parts picked.")
        for category, part in result.picks.items():
            self.stdout.write(
                f"  {category.label}: {part_name(part, '<unnamed>')} "
                f"(${part_price(part):.2f})"
            )
        self.stdout.write(
            f"Total: ${result.total_cost:.2f} (budget ${template.budget_min:g}-"
            f"${template.budget_max:g})"
        )
        if result.within_budget:
            self.stdout.write(self.style.SUCCESS("Within budget"))
        else:
            self.stdout.write(self.style.WARNING("Over budget"))
