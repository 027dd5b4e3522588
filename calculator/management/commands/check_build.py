import json

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from calculator.services.bottleneck import Resolution, UseCase, analyze_bottlenecks
from calculator.services.compatibility import evaluate
from calculator.services.field_rules import get_registry
from calculator.services.health import HealthRating, analyze_build_health
from calculator.services.power import calculate_power
from hardware.parts import part_name, validate_parts

from ._io import load_build, load_json


class Command(BaseCommand):
    help = (
        "Check a build for compatibility issues and estimate its power budget. "
        "BUILD is a JSON object of category -> part record."
    )

    def add_arguments(self, parser):
        parser.add_argument("build", type=str, help="Path to the build JSON file")
        parser.add_argument(
            "--format",
            choices=["text", "json"],
            default="text",
            dest="format",
            help="Output format",
        )
        parser.add_argument(
            "--rules",
            type=str,
            help="JSON list of extra field-comparison rules",
        )
        parser.add_argument(
            "--use-case",
            choices=UseCase.values,
            default=UseCase.BALANCED,
            dest="use_case",
        )
        parser.add_argument(
            "--resolution",
            choices=Resolution.values,
            default=Resolution.UNKNOWN,
        )

    def handle(self, *args, **options):
        selection = load_build(options["build"], stderr=self.stderr)
        validation = validate_parts(
            (part, category) for category, part in selection.items()
        )
        extra = load_json(options["rules"], expect=list) if options.get("rules") else None
        try:
            registry = get_registry(extra)
        except ImproperlyConfigured as exc:
            raise CommandError(str(exc))
        result = evaluate(selection, registry=registry)
        power = calculate_power(selection)
        health = analyze_build_health(selection, registry=registry)
        insights = analyze_bottlenecks(
            selection, options["use_case"], options["resolution"]
        )

        if options["format"] == "json":
            payload = {
                "parts": {str(c): part_name(p, "") for c, p in selection.items()},
                "validation": validation["summary"],
                "summary": result.summary(),
                **result.to_dict(),
                "power": power.to_dict(),
                "health": health.to_dict(),
                "bottlenecks": insights.to_dict(),
            }
            self.stdout.write(json.dumps(payload, indent=2))
            return

        for part, category, check in validation["results"]:
            for msg in check.errors + check.warnings:
                self.stderr.write(
                    f"[{category}] {part_name(part, '<unnamed>')}: {msg.message}"
                )

        self.stdout.write("Parts:")
        for category, part in selection.items():
            self.stdout.write(f"  {category.label}: {part_name(part, '<unnamed>')}")

        if result.issues:
            self.stdout.write("")
            self.stdout.write("Issues:")
            for issue in result.issues:
                line = f"  [{issue.severity.upper()}] {issue.message}"
                if issue.is_blocking:
                    self.stdout.write(self.style.ERROR(line))
                else:
                    self.stdout.write(self.style.WARNING(line))
                for fix_line in issue.fix.split("\n\n"):
                    self.stdout.write(f"      {fix_line}")

        if result.confirmations:
            self.stdout.write("")
            self.stdout.write("Confirmed:")
            for confirmation in result.confirmations:
                self.stdout.write(f"  {confirmation.message}")

        self.stdout.write("")
        self.stdout.write(
            f"Power: estimated load {power.estimated_load:g}W, "
            f"recommended PSU {power.recommended_psu}W, status {power.status}"
        )
        rating = HealthRating(health.overall).label
        self.stdout.write(f"Health: {rating}. {health.summary}")
        for insight in insights.insights:
            self.stdout.write(f"  - {insight.message}")

        summary = result.summary()
        verdict = (
            f"{summary['errors']} error(s), {summary['warnings']} warning(s), "
            f"{summary['info']} info"
        )
        if summary["can_build"]:
            self.stdout.write(self.style.SUCCESS(f"Build is compatible: {verdict}"))
        else:
            self.stdout.write(self.style.ERROR(f"Build has blocking issues: {verdict}"))
