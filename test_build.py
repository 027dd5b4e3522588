import os

import django


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "buildmate.settings")
django.setup()


def main():
    from calculator.services.compatibility import evaluate
    from calculator.services.health import analyze_build_health
    from calculator.services.power import calculate_power

    build = {
        "cpu": {"name": "Ryzen 7 7800X3D", "data": {"socket": "AM5", "tdp_watts": 120}},
        "motherboard": {
            "name": "B650 Tomahawk",
            "data": {"socket": "AM5", "chipset": "B650", "form_factor": "ATX"},
        },
        "ram": {"name": "32GB DDR5-6000", "data": {"speed": "DDR5-6000", "size_gb": 32}},
        "gpu": {
            "name": "RTX 4080",
            "data": {"tdp_watts": 320, "length_mm": 336, "power_connectors": "16-pin"},
        },
        "psu": {"name": "RM850x", "data": {"wattage": 850, "pcie_12vhpwr": True}},
        "case": {
            "name": "NR200",
            "data": {"gpu_max_length_mm": 330, "motherboard_form_factors": "Mini-ITX"},
        },
    }

    result = evaluate(build)
    power = calculate_power(build)

    print("Summary:", result.summary())
    for issue in result.issues:
        print(f"[{issue.severity}] {issue.message}")
    print("Power:", power.to_dict())
    print("Health:", analyze_build_health(build).summary)


if __name__ == "__main__":
    main()
