"""Spec dictionary: the single registry of part attribute metadata.

Every attribute a part record may carry is declared here once, with its
label, unit, value type, importance, display group and the categories it
applies to. Rules, the power budget and the template scorer only read
attributes declared in this module.

The registry is built at import time and exposed through a read-only
mapping; new keys are appended, existing keys are never renamed.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple

from django.db import models


class PartCategory(models.TextChoices):
    CPU = "cpu", "CPU"
    GPU = "gpu", "GPU"
    MOTHERBOARD = "motherboard", "Motherboard"
    RAM = "ram", "RAM"
    STORAGE = "storage", "Storage"
    PSU = "psu", "Power Supply"
    CASE = "case", "Case"
    COOLER = "cooler", "CPU Cooler"


class SpecType(models.TextChoices):
    NUMBER = "number", "Number"
    BOOLEAN = "boolean", "Boolean"
    STRING = "string", "String"


class SpecImportance(models.TextChoices):
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class SpecGroup(models.TextChoices):
    PERFORMANCE = "performance", "Performance"
    COMPATIBILITY = "compatibility", "Compatibility"
    POWER = "power", "Power"
    PHYSICAL = "physical", "Physical"
    MEMORY = "memory", "Memory"
    CONNECTIVITY = "connectivity", "Connectivity"
    FEATURES = "features", "Features"


# Display order of groups when listing a category's specs.
SPEC_GROUP_ORDER = (
    SpecGroup.COMPATIBILITY,
    SpecGroup.PERFORMANCE,
    SpecGroup.POWER,
    SpecGroup.PHYSICAL,
    SpecGroup.MEMORY,
    SpecGroup.CONNECTIVITY,
    SpecGroup.FEATURES,
)

IMPORTANCE_ORDER = (
    SpecImportance.HIGH,
    SpecImportance.MEDIUM,
    SpecImportance.LOW,
)


@dataclass(frozen=True)
class SpecDefinition:
    key: str
    label: str
    categories: frozenset
    group: str
    unit: Optional[str]
    importance: str
    type: str
    description: str = ""
    order: Optional[int] = None

    def applies_to(self, category) -> bool:
        return category in self.categories


C = PartCategory
G = SpecGroup
I = SpecImportance  # noqa: E741
T = SpecType

# (key, label, categories, group, unit, importance, type, description, order)
_SPEC_ROWS = [
    # --- identity ---
    ("name", "Name", (C.CPU, C.GPU, C.MOTHERBOARD, C.RAM, C.STORAGE, C.PSU, C.CASE, C.COOLER),
     G.FEATURES, None, I.LOW, T.STRING, "Product name", None),
    ("price", "Price", (C.CPU, C.GPU, C.MOTHERBOARD, C.RAM, C.STORAGE, C.PSU, C.CASE, C.COOLER),
     G.FEATURES, "USD", I.LOW, T.NUMBER, "Listed price", None),
    # --- performance ---
    ("boost_clock_ghz", "Boost Clock", (C.CPU,), G.PERFORMANCE, "GHz", I.HIGH, T.NUMBER,
     "Maximum single-core boost frequency", 1),
    ("base_clock_ghz", "Base Clock", (C.CPU,), G.PERFORMANCE, "GHz", I.HIGH, T.NUMBER,
     "Base operating frequency", 2),
    ("cores", "Cores", (C.CPU,), G.PERFORMANCE, None, I.HIGH, T.NUMBER,
     "Number of CPU cores", 3),
    ("threads", "Threads", (C.CPU,), G.PERFORMANCE, None, I.MEDIUM, T.NUMBER,
     "Number of simultaneous threads", 4),
    ("memory_clock_mhz", "Memory Clock", (C.GPU,), G.PERFORMANCE, "MHz", I.MEDIUM, T.NUMBER, "", None),
    ("core_clock_mhz", "Core Clock", (C.GPU,), G.PERFORMANCE, "MHz", I.MEDIUM, T.NUMBER, "", None),
    ("boost_clock_mhz", "Boost Clock", (C.GPU,), G.PERFORMANCE, "MHz", I.MEDIUM, T.NUMBER, "", None),
    ("cpu_tier", "CPU Tier", (C.CPU,), G.PERFORMANCE, None, I.MEDIUM, T.STRING,
     "Entry, Budget, Mid-range, High-end, Flagship", None),
    ("gpu_tier", "GPU Tier", (C.GPU,), G.PERFORMANCE, None, I.MEDIUM, T.STRING,
     "Entry, Budget, Mid-range, High-end, Flagship", None),
    ("gpu_memory_bandwidth_gbps", "Memory Bandwidth", (C.GPU,), G.PERFORMANCE, "GB/s", I.LOW, T.NUMBER,
     "GPU memory bandwidth", None),
    # --- compatibility ---
    ("socket", "Socket", (C.CPU, C.MOTHERBOARD), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "CPU socket type (must match between CPU and motherboard)", None),
    ("chipset", "Chipset", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "Motherboard chipset", None),
    ("memory_type", "Memory Type", (C.RAM, C.MOTHERBOARD), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "DDR generation (DDR4, DDR5, etc.)", None),
    ("speed", "Speed", (C.RAM,), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "Kit designation including generation (e.g. DDR5-6000)", None),
    ("max_ram_speed_mhz", "Max RAM Speed", (C.MOTHERBOARD,), G.COMPATIBILITY, "MHz", I.HIGH, T.NUMBER,
     "Maximum supported RAM speed", None),
    ("ram_speed_mhz", "RAM Speed", (C.RAM,), G.COMPATIBILITY, "MHz", I.HIGH, T.NUMBER,
     "RAM operating speed", None),
    ("form_factor", "Form Factor", (C.MOTHERBOARD, C.CASE), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "Physical size standard (ATX, mATX, ITX, etc.)", None),
    ("pcie_slots", "PCIe Slots", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.MEDIUM, T.NUMBER,
     "Number of PCIe expansion slots", None),
    ("sata_ports", "SATA Ports", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.LOW, T.NUMBER,
     "Number of SATA ports", None),
    ("m2_slots", "M.2 Slots", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.MEDIUM, T.NUMBER,
     "Number of M.2 storage slots", None),
    ("generation", "Generation", (C.CPU, C.GPU), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "Processor generation (e.g., Ryzen 5000, i9-13K)", None),
    ("socket_revision", "Socket Revision", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.MEDIUM, T.STRING,
     "Socket version (AM5, LGA1700, etc.)", None),
    ("bios_version_required", "BIOS Version Required", (C.MOTHERBOARD,), G.COMPATIBILITY, None, I.LOW,
     T.STRING, "Minimum BIOS version for CPU support", None),
    ("socket_compatibility", "Socket Compatibility", (C.COOLER,), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     'Supported sockets (e.g., "AM4, AM5")', None),
    ("psu_form_factor", "PSU Form Factor", (C.CASE,), G.COMPATIBILITY, None, I.HIGH, T.STRING,
     "Supported PSU sizes (ATX, SFX, etc.)", None),
    ("motherboard_form_factors", "Motherboard Form Factors", (C.CASE,), G.COMPATIBILITY, None, I.HIGH,
     T.STRING, "Supported motherboard sizes (comma-separated: ATX,mATX,ITX)", None),
    # --- power ---
    ("tdp_watts", "TDP", (C.CPU, C.GPU), G.POWER, "W", I.HIGH, T.NUMBER, "Thermal Design Power", 1),
    ("tdp_w", "TDP", (C.CPU, C.GPU), G.POWER, "W", I.HIGH, T.NUMBER,
     "Thermal Design Power (legacy alias - use tdp_watts)", 1),
    ("wattage", "Wattage", (C.PSU,), G.POWER, "W", I.HIGH, T.NUMBER, "Power supply maximum output", None),
    ("efficiency_rating", "Efficiency Rating", (C.PSU,), G.POWER, None, I.MEDIUM, T.STRING,
     "80 Plus rating (Bronze, Silver, Gold, Platinum, Titanium)", None),
    ("power_connectors", "Power Connectors", (C.GPU, C.PSU), G.POWER, None, I.MEDIUM, T.STRING,
     'Required power connectors (e.g., "8-pin + 8-pin")', None),
    ("tdp_rating_watts", "TDP Rating", (C.COOLER,), G.POWER, "W", I.HIGH, T.NUMBER,
     "Maximum TDP the cooler can handle", None),
    ("pcie_8pin_count", "PCIe 8-Pin Count", (C.PSU,), G.POWER, None, I.HIGH, T.NUMBER,
     "Number of 8-pin PCIe power connectors", None),
    ("pcie_6pin_count", "PCIe 6-Pin Count", (C.PSU,), G.POWER, None, I.HIGH, T.NUMBER,
     "Number of 6-pin PCIe power connectors", None),
    ("pcie_12vhpwr", "12VHPWR Support", (C.PSU,), G.POWER, None, I.MEDIUM, T.BOOLEAN,
     "Native 12VHPWR (16-pin) connector", None),
    ("motherboard_power_pins", "Motherboard Power (24-pin)", (C.PSU,), G.POWER, None, I.HIGH, T.BOOLEAN,
     "Standard 24-pin ATX power", None),
    ("cpu_power_4pin", "CPU Power (4-pin)", (C.PSU,), G.POWER, None, I.HIGH, T.NUMBER,
     "Number of 4-pin CPU power connectors", None),
    ("cpu_power_8pin", "CPU Power (8-pin)", (C.PSU,), G.POWER, None, I.HIGH, T.NUMBER,
     "Number of 8-pin CPU power connectors", None),
    # --- physical ---
    ("length_mm", "Length", (C.GPU, C.CASE), G.PHYSICAL, "mm", I.HIGH, T.NUMBER, "Component length", None),
    ("width_mm", "Width", (C.GPU, C.CASE), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER, "", None),
    ("height_mm", "Height", (C.GPU, C.CASE, C.COOLER), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER, "", None),
    ("gpu_max_length_mm", "Max GPU Length", (C.CASE,), G.PHYSICAL, "mm", I.HIGH, T.NUMBER,
     "Maximum GPU length supported by case", None),
    ("gpu_max_height_mm", "Max GPU Height", (C.CASE,), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Maximum GPU height (card width from slot) supported by case", None),
    ("cpu_cooler_height_mm", "Max CPU Cooler Height", (C.CASE,), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Maximum CPU cooler height supported", None),
    ("weight_kg", "Weight", (C.CASE, C.PSU), G.PHYSICAL, "kg", I.LOW, T.NUMBER, "", None),
    ("thickness_mm", "Thickness", (C.GPU, C.COOLER), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Component thickness", None),
    ("interior_length_mm", "Interior Length", (C.CASE,), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Interior length of case", None),
    ("interior_width_mm", "Interior Width", (C.CASE,), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Interior width of case", None),
    ("interior_height_mm", "Interior Height", (C.CASE,), G.PHYSICAL, "mm", I.MEDIUM, T.NUMBER,
     "Interior height of case", None),
    ("form_factor_storage", "Storage Form Factor", (C.STORAGE,), G.PHYSICAL, None, I.HIGH, T.STRING,
     '2.5", 3.5", M.2, etc.', None),
    ("psu_form_factor_type", "PSU Form Factor", (C.PSU,), G.PHYSICAL, None, I.HIGH, T.STRING,
     "ATX, SFX, TFX, etc.", None),
    # --- memory ---
    ("vram_gb", "VRAM", (C.GPU,), G.MEMORY, "GB", I.HIGH, T.NUMBER, "Video memory capacity", None),
    ("size_gb", "Capacity", (C.RAM, C.STORAGE), G.MEMORY, "GB", I.HIGH, T.NUMBER,
     "Storage or memory capacity", None),
    ("capacity_tb", "Capacity", (C.STORAGE,), G.MEMORY, "TB", I.HIGH, T.NUMBER,
     "Storage capacity in terabytes", None),
    ("gpu_memory_type", "GPU Memory Type", (C.GPU,), G.MEMORY, None, I.MEDIUM, T.STRING,
     "GDDR6, GDDR6X, HBM, etc.", None),
    ("max_ram_gb", "Max RAM", (C.MOTHERBOARD,), G.MEMORY, "GB", I.MEDIUM, T.NUMBER,
     "Maximum RAM capacity", None),
    # --- connectivity ---
    ("usb_ports", "USB Ports", (C.MOTHERBOARD, C.CASE), G.CONNECTIVITY, None, I.MEDIUM, T.NUMBER,
     "Number of USB ports", None),
    ("usb_c_ports", "USB-C Ports", (C.MOTHERBOARD, C.CASE), G.CONNECTIVITY, None, I.MEDIUM, T.NUMBER, "", None),
    ("display_ports", "Display Ports", (C.GPU, C.MOTHERBOARD), G.CONNECTIVITY, None, I.MEDIUM, T.NUMBER, "", None),
    ("hdmi_ports", "HDMI Ports", (C.GPU, C.MOTHERBOARD), G.CONNECTIVITY, None, I.MEDIUM, T.NUMBER, "", None),
    ("ethernet_ports", "Ethernet Ports", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.LOW, T.NUMBER, "", None),
    ("wifi", "Wi-Fi", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.MEDIUM, T.BOOLEAN,
     "Built-in Wi-Fi support", None),
    ("bluetooth", "Bluetooth", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.LOW, T.BOOLEAN, "", None),
    ("gpu_bus_width", "GPU Bus Width", (C.GPU,), G.CONNECTIVITY, "bit", I.LOW, T.NUMBER,
     "Memory bus width", None),
    ("pcie_generation", "PCIe Generation", (C.GPU, C.STORAGE, C.MOTHERBOARD), G.CONNECTIVITY, None,
     I.MEDIUM, T.STRING, "PCIe version (3.0, 4.0, 5.0)", None),
    ("pcie_lanes_required", "PCIe Lanes Required", (C.GPU,), G.CONNECTIVITY, "lanes", I.LOW, T.NUMBER,
     "PCIe lanes needed (typically x16 or x8)", None),
    ("drive_bays_35", '3.5" Drive Bays', (C.CASE,), G.CONNECTIVITY, None, I.LOW, T.NUMBER,
     'Number of 3.5" drive bays', None),
    ("drive_bays_25", '2.5" Drive Bays', (C.CASE,), G.CONNECTIVITY, None, I.LOW, T.NUMBER,
     'Number of 2.5" drive bays', None),
    ("max_ram_slots", "Max RAM Slots", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.LOW, T.NUMBER,
     "Number of RAM slots", None),
    ("nvme_protocol", "NVMe Protocol", (C.STORAGE,), G.CONNECTIVITY, None, I.MEDIUM, T.STRING,
     "NVMe version (1.3, 1.4, etc.)", None),
    ("nvme_pcie_gen", "NVMe PCIe Gen", (C.STORAGE, C.MOTHERBOARD), G.CONNECTIVITY, None, I.MEDIUM, T.STRING,
     "PCIe generation for NVMe (3.0, 4.0, 5.0)", None),
    ("storage_interfaces", "Storage Interfaces", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.MEDIUM, T.STRING,
     "Supported interfaces (SATA, NVMe, M.2, etc.)", None),
    ("pcie_slot_count", "PCIe Slots", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.LOW, T.NUMBER,
     "Total number of PCIe slots", None),
    ("pcie_gen_slots", "PCIe Gen by Slot", (C.MOTHERBOARD,), G.CONNECTIVITY, None, I.MEDIUM, T.STRING,
     'PCIe generations available (e.g., "x16 Gen5, x1 Gen3")', None),
    # --- features ---
    ("modular", "Modular", (C.PSU,), G.FEATURES, None, I.MEDIUM, T.BOOLEAN, "Modular cable design", None),
    ("rgb", "RGB", (C.RAM, C.GPU, C.CASE, C.COOLER), G.FEATURES, None, I.LOW, T.BOOLEAN,
     "RGB lighting support", None),
    ("type", "Type", (C.STORAGE,), G.FEATURES, None, I.HIGH, T.STRING,
     "Storage type (SSD, HDD, NVMe, etc.)", None),
    ("interface", "Interface", (C.STORAGE,), G.FEATURES, None, I.HIGH, T.STRING,
     "Connection interface (SATA, PCIe, NVMe, etc.)", None),
    ("read_speed_mbps", "Read Speed", (C.STORAGE,), G.FEATURES, "MB/s", I.MEDIUM, T.NUMBER,
     "Sequential read speed", None),
    ("write_speed_mbps", "Write Speed", (C.STORAGE,), G.FEATURES, "MB/s", I.MEDIUM, T.NUMBER,
     "Sequential write speed", None),
    ("fan_count", "Fan Count", (C.GPU, C.CASE, C.COOLER), G.FEATURES, None, I.LOW, T.NUMBER,
     "Number of fans", None),
    ("liquid_cooled", "Liquid Cooled", (C.COOLER, C.GPU), G.FEATURES, None, I.LOW, T.BOOLEAN,
     "Liquid cooling support", None),
    ("power_supply_cover", "Power Supply Cover", (C.CASE,), G.FEATURES, None, I.LOW, T.BOOLEAN,
     "Has shroud/cover for PSU", None),
    ("ecc_support", "ECC Support", (C.MOTHERBOARD, C.RAM), G.FEATURES, None, I.LOW, T.BOOLEAN,
     "Error Correcting Code support", None),
    ("modular_type", "Modular Type", (C.PSU,), G.FEATURES, None, I.MEDIUM, T.STRING,
     "Non-modular, Semi-modular, Fully-modular", None),
    ("overclocking_support", "Overclocking", (C.MOTHERBOARD,), G.FEATURES, None, I.LOW, T.BOOLEAN,
     "Supports CPU/memory overclocking", None),
]

del C, G, I, T


def _build_dictionary(rows) -> Dict[str, SpecDefinition]:
    specs = {}
    for key, label, cats, group, unit, importance, typ, description, order in rows:
        if key in specs:
            raise ValueError(f"Duplicate spec key: {key}")
        specs[key] = SpecDefinition(
            key=key,
            label=label,
            categories=frozenset(cats),
            group=group,
            unit=unit,
            importance=importance,
            type=typ,
            description=description,
            order=order,
        )
    return specs


SPEC_DICTIONARY = MappingProxyType(_build_dictionary(_SPEC_ROWS))

# Declaration position is the last tie-break when sorting.
_DECLARED = {key: idx for idx, key in enumerate(SPEC_DICTIONARY)}


def get_spec_definition(key) -> Optional[SpecDefinition]:
    if not isinstance(key, str):
        return None
    return SPEC_DICTIONARY.get(key)


def is_valid_spec_key(key) -> bool:
    return get_spec_definition(key) is not None


def _sort_key(item: Tuple[str, SpecDefinition]):
    key, definition = item
    order = definition.order if definition.order is not None else float("inf")
    return (
        SPEC_GROUP_ORDER.index(definition.group),
        IMPORTANCE_ORDER.index(definition.importance),
        order,
        _DECLARED[key],
    )


def get_specs_for_category(category) -> List[Tuple[str, SpecDefinition]]:
    """Return ``(key, definition)`` pairs applicable to ``category``.

    Ordered by group display order, then importance (high first), then the
    explicit ``order`` ordinal, then declaration order.
    """
    matches = [
        (key, definition)
        for key, definition in SPEC_DICTIONARY.items()
        if definition.applies_to(category)
    ]
    return sorted(matches, key=_sort_key)


def get_specs_by_group(group) -> List[Tuple[str, SpecDefinition]]:
    return [
        (key, definition)
        for key, definition in SPEC_DICTIONARY.items()
        if definition.group == group
    ]


def get_specs_by_importance(importance) -> List[Tuple[str, SpecDefinition]]:
    return [
        (key, definition)
        for key, definition in SPEC_DICTIONARY.items()
        if definition.importance == importance
    ]


def _with_unit(text: str, unit) -> str:
    return f"{text} {unit}" if unit else text


def format_spec_value(value, unit=None, spec_type=SpecType.STRING) -> str:
    """Render a spec value for display. Never raises."""
    if value is None:
        return ""
    try:
        if spec_type == SpecType.BOOLEAN:
            return "Yes" if value else "No"
        if spec_type == SpecType.NUMBER:
            if isinstance(value, bool):
                return _with_unit(str(value), unit)
            try:
                num = float(value)
            except (TypeError, ValueError):
                return _with_unit(str(value), unit)
            if num != num or num in (float("inf"), float("-inf")):
                return _with_unit(str(value), unit)
            if num.is_integer():
                return _with_unit(str(int(num)), unit)
            return _with_unit(f"{num:.2f}", unit)
        return _with_unit(str(value), unit)
    except Exception:
        return ""
