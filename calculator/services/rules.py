"""Registered compatibility rules.

Rules run in the order of ``DEFAULT_RULES``, grouped by their most severe
outcome: blocking checks, then advisory checks (which may also emit notes),
then checks that only ever emit notes. Each rule reads parts only
through ``hardware.parts`` accessors and declares every spec key it reads.
"""
import re

from hardware.parts import get_flag, get_spec_value, get_text, part_name
from hardware.specs import PartCategory as C

from .compatibility import (
    Rule,
    RuleOutcome,
    RuleRegistry,
    Severity,
    ValidationSkipped,
    fix_options,
    fmt_num,
    number_or_skip,
)
from .power import recommended_psu_wattage


# --- Normalisation helpers ---
def norm(s):
    """Normalize socket / form factor strings to a compact alphanumeric form.

    - lowercases
    - strips the word 'socket'
    - removes any non-alphanumeric characters
    so 'Socket AM5', 'AM5' and 'am-5' all compare equal.
    """
    s = str(s or "").lower()
    s = s.replace("socket", "")
    return re.sub(r"[^a-z0-9]", "", s)


def split_list(value):
    """Split a 'AM4, AM5 / LGA1700' style list into normalized tokens."""
    return [norm(p) for p in re.split(r"[,/;|]", str(value or "")) if norm(p)]


def text_or_skip(part, key):
    text = get_text(part, key)
    if text is None:
        raise ValidationSkipped(f"{key} is not set")
    return text


def known_or_skip(*values):
    if any(v is None for v in values):
        raise ValidationSkipped("required value is not set")


def display_socket(value):
    return str(value).strip().upper()


# DDR generations each chipset's memory controller accepts.
CHIPSET_MEMORY_SUPPORT = {
    # AMD AM5
    "x870e": {"DDR5"}, "x870": {"DDR5"}, "b850": {"DDR5"}, "b840": {"DDR5"},
    "x670e": {"DDR5"}, "x670": {"DDR5"}, "b650e": {"DDR5"}, "b650": {"DDR5"},
    "a620": {"DDR5"},
    # AMD AM4
    "x570": {"DDR4"}, "b550": {"DDR4"}, "a520": {"DDR4"}, "x470": {"DDR4"},
    "b450": {"DDR4"}, "x370": {"DDR4"}, "b350": {"DDR4"}, "a320": {"DDR4"},
    # Intel LGA1851
    "z890": {"DDR5"}, "b860": {"DDR5"}, "h810": {"DDR5"},
    # Intel LGA1700 (board vendor decides)
    "z790": {"DDR4", "DDR5"}, "b760": {"DDR4", "DDR5"}, "h770": {"DDR4", "DDR5"},
    "z690": {"DDR4", "DDR5"}, "b660": {"DDR4", "DDR5"}, "h670": {"DDR4", "DDR5"},
    "h610": {"DDR4", "DDR5"},
    # Intel LGA1200
    "z590": {"DDR4"}, "b560": {"DDR4"}, "h570": {"DDR4"}, "h510": {"DDR4"},
    "z490": {"DDR4"}, "b460": {"DDR4"}, "h470": {"DDR4"}, "h410": {"DDR4"},
}

DDR_RE = re.compile(r"ddr\s*(\d)", re.IGNORECASE)
CHIPSET_RE = re.compile(r"\b([abhxz]\d{3}e?)\b", re.IGNORECASE)


def ddr_generations(text):
    return {f"DDR{m}" for m in DDR_RE.findall(str(text or ""))}


def chipset_generations(chipset):
    for token in CHIPSET_RE.findall(str(chipset or "")):
        token = token.lower()
        if token in CHIPSET_MEMORY_SUPPORT:
            return CHIPSET_MEMORY_SUPPORT[token]
        if token.rstrip("e") in CHIPSET_MEMORY_SUPPORT:
            return CHIPSET_MEMORY_SUPPORT[token.rstrip("e")]
    return set()


FORM_FACTOR_ALIASES = {
    "atx": "ATX",
    "standardatx": "ATX",
    "eatx": "E-ATX",
    "extendedatx": "E-ATX",
    "microatx": "Micro-ATX",
    "matx": "Micro-ATX",
    "uatx": "Micro-ATX",
    "miniitx": "Mini-ITX",
    "itx": "Mini-ITX",
    "minidtx": "Mini-DTX",
    "sfx": "SFX",
    "sfxl": "SFX-L",
    "tfx": "TFX",
}


def form_factor(value):
    key = norm(value)
    return FORM_FACTOR_ALIASES.get(key, key.upper())


def pcie_generation(value):
    s = str(value or "").lower()
    # "x16 Gen5" names the generation after the lane width
    m = re.search(r"(?:gen|pcie)\s*(\d+(?:\.\d+)?)", s) or re.search(r"(\d+(?:\.\d+)?)", s)
    if not m:
        return None
    return float(m.group(1))


# Connector types in the order they are reported.
CONNECTOR_TYPES = ("12VHPWR", "8-pin", "6-pin")

_CONNECTOR_PATTERNS = (
    (
        "12VHPWR",
        re.compile(
            r"(?:(\d+)\s*x\s*)?(?:12vhpwr|16-pin)(?:\s*\((?:12vhpwr|16-pin)\))?"
        ),
    ),
    ("8-pin", re.compile(r"(?:(\d+)\s*x\s*)?\b8-pin")),
    ("6-pin", re.compile(r"(?:(\d+)\s*x\s*)?\b6-pin")),
)


def parse_power_connectors(text):
    """Count PCIe power connectors by type.

    '2x 8-pin + 6-pin' -> {'8-pin': 2, '6-pin': 1}. '6+2-pin' counts as an
    8-pin. Returns ``None`` when nothing is recognised.
    """
    s = str(text or "").lower()
    if s.strip() in ("none", "n/a", "0", "slot", "slot power", "bus"):
        return {}
    s = s.replace("×", "x")
    s = re.sub(r"12v-?2x6|12v-?hpwr", "12vhpwr", s)
    s = re.sub(r"6\s*\+\s*2[\s-]*pin", "8-pin", s)
    s = re.sub(r"(\d+)[\s-]*pins?\b", r"\1-pin", s)
    # "2x8-pin" has no word boundary between the x and the connector
    s = re.sub(r"(\d+)\s*x\s*(?=\d+-pin|12vhpwr)", r"\1x ", s)
    counts = {}
    for ctype, pattern in _CONNECTOR_PATTERNS:
        for m in pattern.finditer(s):
            counts[ctype] = counts.get(ctype, 0) + int(m.group(1) or 1)
        s = pattern.sub(" ", s)
    return counts or None


def describe_connectors(counts):
    parts = [f"{counts[t]}x {t}" for t in CONNECTOR_TYPES if counts.get(t)]
    return " + ".join(parts) if parts else "no PCIe power connectors"


TIER_ORDER = ("entry", "budget", "mid-range", "high-end", "flagship")


def tier_index(value):
    key = str(value or "").strip().lower().replace(" ", "-")
    if key == "midrange":
        key = "mid-range"
    if key == "highend":
        key = "high-end"
    try:
        return TIER_ORDER.index(key)
    except ValueError:
        return None


# ==================== HARD COMPATIBILITY (errors) ====================
class SocketRule(Rule):
    """CPU and motherboard must share a socket."""

    rule_id = "cpu-motherboard-socket"
    requires = (C.CPU, C.MOTHERBOARD)
    spec_keys = ("socket",)

    def check(self, parts, policy):
        cpu, board = parts[C.CPU], parts[C.MOTHERBOARD]
        cpu_socket = display_socket(text_or_skip(cpu, "socket"))
        board_socket = display_socket(text_or_skip(board, "socket"))
        if not norm(cpu_socket) or not norm(board_socket):
            raise ValidationSkipped("blank socket")
        cpu_name = part_name(cpu, "Your CPU")
        board_name = part_name(board, "Your motherboard")

        if norm(cpu_socket) == norm(board_socket):
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "CPU Socket Match",
                        f"{cpu_name} and {board_name} both use {cpu_socket}.",
                        "The CPU seats in the motherboard socket and the "
                        "retention mechanism lines up.",
                    ),
                )
            )

        return RuleOutcome(
            issues=(
                self.issue(
                    type="CPU Socket Mismatch",
                    severity=Severity.ERROR,
                    message=(
                        f"CPU Socket Mismatch: {cpu_name} requires {cpu_socket} "
                        f"but {board_name} has {board_socket}"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{cpu_name}" uses the {cpu_socket} socket, '
                        f'but "{board_name}" uses the {board_socket} socket.\n\n'
                        "EXACTLY WHAT'S WRONG:\n"
                        f"- Your CPU: {cpu_name} (socket: {cpu_socket})\n"
                        f"- Your motherboard: {board_name} (socket: {board_socket})\n"
                        "- Problem: the CPU's pin/pad layout does not match the "
                        "socket, so it physically cannot be installed."
                    ),
                    fix=fix_options(
                        f"Replace the motherboard with one that has an {cpu_socket} "
                        "socket (to match your CPU)",
                        f"Replace the CPU with a processor that uses the {board_socket} "
                        "socket (to match your motherboard)",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the CPU cannot be installed, so the "
                        "build will not work."
                    ),
                    recommendation=(
                        "Choose the CPU and motherboard as a pair with the same "
                        "socket. Common sockets: AM4/AM5 (AMD), LGA1200/LGA1700/"
                        "LGA1851 (Intel)."
                    ),
                ),
            )
        )


class MemoryGenerationRule(Rule):
    """RAM generation must be one the motherboard supports."""

    rule_id = "ram-motherboard-memory-generation"
    requires = (C.RAM, C.MOTHERBOARD)
    spec_keys = ("speed", "memory_type", "chipset")

    def check(self, parts, policy):
        ram, board = parts[C.RAM], parts[C.MOTHERBOARD]
        ram_gens = ddr_generations(get_text(ram, "speed")) or ddr_generations(
            get_text(ram, "memory_type")
        )
        if len(ram_gens) != 1:
            raise ValidationSkipped("RAM generation unknown")
        ram_gen = next(iter(ram_gens))

        chipset = get_text(board, "chipset")
        board_gens = ddr_generations(get_text(board, "memory_type"))
        source = "memory type"
        if not board_gens:
            board_gens = chipset_generations(chipset)
            source = f"{chipset} chipset"
        if not board_gens:
            raise ValidationSkipped("motherboard memory generation unknown")

        ram_name = part_name(ram, "Your RAM")
        board_name = part_name(board, "Your motherboard")
        supported = "/".join(sorted(board_gens))

        if ram_gen in board_gens:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "Memory Generation Match",
                        f"{ram_name} ({ram_gen}) is supported by {board_name} ({supported}).",
                        "The DIMM key notch matches the motherboard slots.",
                    ),
                )
            )

        return RuleOutcome(
            issues=(
                self.issue(
                    type="Memory Type Mismatch",
                    severity=Severity.ERROR,
                    message=(
                        f"Memory Type Mismatch: {ram_name} is {ram_gen} but "
                        f"{board_name} supports {supported}"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{ram_name}" is {ram_gen} memory, but '
                        f'"{board_name}" only supports {supported} (from its {source}).\n\n'
                        "EXACTLY WHAT'S WRONG:\n"
                        f"- Your RAM: {ram_name} (generation: {ram_gen})\n"
                        f"- Your motherboard: {board_name} (supports: {supported})\n"
                        "- Problem: each DDR generation has a different key notch "
                        "and signalling; the modules will not seat in the slots."
                    ),
                    fix=fix_options(
                        f"Replace your RAM with a {supported} kit to match the motherboard",
                        f"Replace the motherboard with one that supports {ram_gen} memory",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the RAM will not fit, so the system "
                        "cannot boot."
                    ),
                    recommendation=(
                        "DDR4 and DDR5 are not interchangeable. Check the "
                        "motherboard's memory type before picking a kit."
                    ),
                ),
            )
        )


class PowerHeadroomRule(Rule):
    """Estimated CPU + GPU + baseline draw must fit the PSU rating."""

    rule_id = "psu-power-headroom"
    requires = (C.PSU,)
    requires_any = (C.CPU, C.GPU)
    spec_keys = ("wattage", "tdp_watts", "tdp_w")

    def _tdp(self, parts, category, default):
        part = parts.get(category)
        if part is None:
            return 0.0, False
        tdp = number_or_skip(part, "tdp_watts")
        if tdp is None:
            tdp = number_or_skip(part, "tdp_w")
        if tdp is None or tdp <= 0:
            return float(default), True
        return tdp, False

    def check(self, parts, policy):
        psu = parts[C.PSU]
        wattage = number_or_skip(psu, "wattage")
        if wattage is None or wattage <= 0:
            raise ValidationSkipped("PSU wattage unknown")
        cpu_tdp, cpu_est = self._tdp(parts, C.CPU, policy.default_cpu_tdp)
        gpu_tdp, gpu_est = self._tdp(parts, C.GPU, policy.default_gpu_tdp)
        baseline = policy.rule_baseline_watts
        load = cpu_tdp + gpu_tdp + baseline
        utilization = load / wattage
        psu_name = part_name(psu, "Your PSU")
        affected = tuple(c for c in (C.PSU, C.CPU, C.GPU) if c in parts)

        terms = []
        if C.CPU in parts:
            terms.append(f"CPU {fmt_num(cpu_tdp)}W{' (estimated)' if cpu_est else ''}")
        if C.GPU in parts:
            terms.append(f"GPU {fmt_num(gpu_tdp)}W{' (estimated)' if gpu_est else ''}")
        terms.append(f"baseline {fmt_num(baseline)}W")
        breakdown = " + ".join(terms)
        recommended = recommended_psu_wattage(load, 0, policy)
        pct = round(utilization * 100)

        if load > wattage:
            shortfall = load - wattage
            return RuleOutcome(
                issues=(
                    self.issue(
                        type="Insufficient PSU Wattage",
                        severity=Severity.ERROR,
                        message=(
                            f"Insufficient PSU Wattage: {psu_name} ({fmt_num(wattage)}W) "
                            f"is below the estimated draw of {fmt_num(load)}W"
                        ),
                        explanation=(
                            f"Estimated system draw is {fmt_num(load)}W ({breakdown}), "
                            f'but "{psu_name}" is rated for {fmt_num(wattage)}W, '
                            f"{fmt_num(shortfall)}W short. A PSU asked for more than its "
                            "rating trips over-current protection or browns out "
                            "under load."
                        ),
                        fix=fix_options(
                            f"Replace the PSU with one rated at least {recommended}W",
                            "Choose a lower-power GPU or CPU so the estimated draw "
                            f"falls below {fmt_num(wattage)}W",
                        ),
                        severity_explanation=(
                            "BLOCKING ERROR: the system will shut down or fail to "
                            "boot under load, and components may be damaged."
                        ),
                        recommendation=(
                            "Size the PSU so typical load sits well below its "
                            "rating; PSUs are most efficient at 50-80% load."
                        ),
                        affected=affected,
                    ),
                )
            )

        if utilization > policy.rule_warning_utilization:
            return RuleOutcome(
                issues=(
                    self.issue(
                        type="Low PSU Headroom",
                        severity=Severity.WARNING,
                        message=(
                            f"Low PSU Headroom: estimated draw {fmt_num(load)}W is "
                            f"{pct}% of {psu_name} ({fmt_num(wattage)}W)"
                        ),
                        explanation=(
                            f"Estimated system draw: {fmt_num(load)}W ({breakdown}). "
                            f'"{psu_name}" leaves only {fmt_num(wattage - load)}W of '
                            "headroom, so transient spikes from the GPU and CPU can "
                            "approach the rating."
                        ),
                        fix=fix_options(
                            f"Upgrade to a PSU of at least {recommended}W",
                            "Keep this PSU and choose a lower-TDP CPU or GPU",
                        ),
                        severity_explanation=(
                            "Low headroom reduces efficiency and lifespan and can "
                            "cause instability under heavy load."
                        ),
                        recommendation=(
                            "Aim for the estimated draw to stay under "
                            f"{round(policy.rule_warning_utilization * 100)}% of the PSU rating."
                        ),
                        affected=affected,
                    ),
                )
            )

        return RuleOutcome(
            confirmations=(
                self.confirm(
                    "PSU Wattage Sufficient",
                    f"{psu_name} ({fmt_num(wattage)}W) covers the estimated "
                    f"{fmt_num(load)}W draw ({pct}% load).",
                    f"Estimated draw: {breakdown}.",
                ),
            )
        )


class GpuClearanceRule(Rule):
    """GPU length and height must fit the case's GPU clearance."""

    rule_id = "gpu-case-clearance"
    requires = (C.GPU, C.CASE)
    spec_keys = ("length_mm", "height_mm", "gpu_max_length_mm", "gpu_max_height_mm")

    def check(self, parts, policy):
        gpu, case = parts[C.GPU], parts[C.CASE]
        axes = (
            ("length", "TOO LONG", number_or_skip(gpu, "length_mm"),
             number_or_skip(case, "gpu_max_length_mm")),
            ("height", "TOO TALL", number_or_skip(gpu, "height_mm"),
             number_or_skip(case, "gpu_max_height_mm")),
        )
        measured = [a for a in axes if a[2] is not None and a[3] is not None]
        if not measured:
            raise ValidationSkipped("no comparable GPU dimensions")
        over = [
            (axis, word, size, limit, size - limit)
            for axis, word, size, limit in measured
            if size > limit
        ]
        gpu_name = part_name(gpu, "Your GPU")
        case_name = part_name(case, "Your case")

        if not over:
            dims = ", ".join(
                f"{axis} {fmt_num(size)}mm of {fmt_num(limit)}mm"
                for axis, _w, size, limit in measured
            )
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "GPU Fits Case",
                        f"{gpu_name} fits in {case_name} ({dims}).",
                        "The card clears the case's GPU space on every measured axis.",
                    ),
                )
            )

        short = ", ".join(
            f"{axis} {fmt_num(size)}mm > {fmt_num(limit)}mm by {fmt_num(excess)}mm"
            for axis, _w, size, limit, excess in over
        )
        details = "\n".join(
            f"- {axis.title()}: {fmt_num(size)}mm (GPU) vs {fmt_num(limit)}mm (case) - "
            f"GPU is {fmt_num(excess)}mm {word}"
            for axis, word, size, limit, excess in over
        )
        largest = max(o[4] for o in over)
        limits = ", ".join(f"max {fmt_num(limit)}mm {axis}" for axis, _w, _s, limit, _e in over)
        return RuleOutcome(
            issues=(
                self.issue(
                    type="GPU Clearance Issue",
                    severity=Severity.ERROR,
                    message=f"GPU Too Large: {gpu_name} exceeds {case_name} clearance ({short})",
                    explanation=(
                        f'INCOMPATIBLE: "{gpu_name}" is physically too large for '
                        f'"{case_name}".\n\nEXACTLY WHAT\'S WRONG:\n{details}'
                    ),
                    fix=fix_options(
                        f"Choose a larger case with at least {fmt_num(largest)}mm more "
                        "GPU clearance on the violated axis",
                        f"Choose a smaller GPU that fits {case_name} ({limits})",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the card will collide with the case and "
                        "cannot be installed."
                    ),
                    recommendation=(
                        'Compare the card\'s length and height against the case\'s '
                        '"max GPU length" before buying; triple-fan cards need '
                        "mid-tower or larger cases."
                    ),
                    spec_keys=tuple(
                        k
                        for axis, *_rest in over
                        for k in (
                            ("length_mm", "gpu_max_length_mm")
                            if axis == "length"
                            else ("height_mm", "gpu_max_height_mm")
                        )
                    ),
                ),
            )
        )


class CoolerClearanceRule(Rule):
    """Cooler height must fit under the case side panel."""

    rule_id = "cooler-case-clearance"
    requires = (C.COOLER, C.CASE)
    spec_keys = ("height_mm", "cpu_cooler_height_mm")

    def check(self, parts, policy):
        cooler, case = parts[C.COOLER], parts[C.CASE]
        height = number_or_skip(cooler, "height_mm")
        limit = number_or_skip(case, "cpu_cooler_height_mm")
        known_or_skip(height, limit)
        cooler_name = part_name(cooler, "Your cooler")
        case_name = part_name(case, "Your case")

        if height <= limit:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "Cooler Fits Case",
                        f"{cooler_name} ({fmt_num(height)}mm) fits under the "
                        f"{fmt_num(limit)}mm limit of {case_name}.",
                        f"{fmt_num(limit - height)}mm of clearance remains.",
                    ),
                )
            )

        excess = height - limit
        return RuleOutcome(
            issues=(
                self.issue(
                    type="Cooler Height Clearance Issue",
                    severity=Severity.ERROR,
                    message=(
                        f"Cooler Too Tall: {cooler_name} ({fmt_num(height)}mm) exceeds "
                        f"{case_name} (max {fmt_num(limit)}mm) by {fmt_num(excess)}mm"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{cooler_name}" is too tall for "{case_name}".\n\n'
                        "EXACTLY WHAT'S WRONG:\n"
                        f"- Your cooler: {cooler_name} (height: {fmt_num(height)}mm)\n"
                        f"- Your case: {case_name} (max cooler height: {fmt_num(limit)}mm)\n"
                        f"- Problem: the cooler is {fmt_num(excess)}mm TOO TALL; the "
                        "side panel cannot close over it."
                    ),
                    fix=fix_options(
                        f"Replace the cooler with a model no taller than {fmt_num(limit)}mm",
                        "Replace the case with one that supports coolers of at least "
                        f"{fmt_num(height)}mm",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the cooler physically will not fit, so "
                        "the build cannot be assembled."
                    ),
                    recommendation=(
                        "Check the case's maximum CPU cooler height; a low-profile "
                        "air cooler or an AIO avoids the limit."
                    ),
                ),
            )
        )


class PowerConnectorRule(Rule):
    """PSU must supply each PCIe power connector type the GPU needs."""

    rule_id = "gpu-psu-power-connectors"
    requires = (C.GPU, C.PSU)
    spec_keys = (
        "power_connectors",
        "pcie_8pin_count",
        "pcie_6pin_count",
        "pcie_12vhpwr",
    )

    def _supplied(self, psu):
        counts = {
            "8-pin": number_or_skip(psu, "pcie_8pin_count"),
            "6-pin": number_or_skip(psu, "pcie_6pin_count"),
        }
        raw = get_spec_value(psu, "pcie_12vhpwr")
        if raw is None:
            counts["12VHPWR"] = None
        elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
            counts["12VHPWR"] = number_or_skip(psu, "pcie_12vhpwr")
        else:
            flag = get_flag(psu, "pcie_12vhpwr")
            if flag is None:
                raise ValidationSkipped(f"pcie_12vhpwr={raw!r} is not a flag")
            counts["12VHPWR"] = 1.0 if flag else 0.0

        listed = parse_power_connectors(get_text(psu, "power_connectors"))
        if listed is not None:
            for ctype in CONNECTOR_TYPES:
                if counts[ctype] is None:
                    counts[ctype] = float(listed.get(ctype, 0))
        return counts

    def check(self, parts, policy):
        gpu, psu = parts[C.GPU], parts[C.PSU]
        required = parse_power_connectors(text_or_skip(gpu, "power_connectors"))
        if required is None:
            raise ValidationSkipped("GPU power connectors not recognised")
        supplied = self._supplied(psu)
        known_or_skip(*(supplied[t] for t in required))

        gpu_name = part_name(gpu, "Your GPU")
        psu_name = part_name(psu, "Your PSU")
        missing = {
            t: int(required[t] - supplied[t])
            for t in CONNECTOR_TYPES
            if t in required and supplied[t] < required[t]
        }
        need = describe_connectors(required)
        have = describe_connectors(
            {t: int(supplied[t]) for t in required if supplied[t]}
        )

        if not missing:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "PCIe Power Connectors Available",
                        f"{psu_name} provides the connectors {gpu_name} needs ({need}).",
                        "Every GPU power input has a native PSU cable.",
                    ),
                )
            )

        missing_text = ", ".join(f"{n}x {t}" for t, n in missing.items())
        lines = "\n".join(
            f"- {t}: GPU needs {required[t]}, PSU provides {int(supplied[t])} "
            f"(missing {n})"
            for t, n in missing.items()
        )
        psu_target = describe_connectors(required)
        return RuleOutcome(
            issues=(
                self.issue(
                    type="Missing PCIe Power Connectors",
                    severity=Severity.ERROR,
                    message=(
                        f"Missing PSU Connectors: {gpu_name} needs {need} but "
                        f"{psu_name} is missing {missing_text}"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{gpu_name}" requires {need}, but "{psu_name}" '
                        f"provides {have}.\n\nEXACTLY WHAT'S MISSING:\n{lines}\n\n"
                        "Adapters and splitters are not counted: they can exceed the "
                        "rated current of a single cable and are a known melting risk."
                    ),
                    fix=fix_options(
                        f"Choose a PSU with native cables for at least {psu_target}",
                        "Choose a GPU whose power inputs match what this PSU provides "
                        f"({have})",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the GPU cannot be powered without the "
                        "required connectors and will not run."
                    ),
                    recommendation=(
                        "Match GPU power inputs to native PSU cables; newer high-end "
                        "cards need a PSU with a native 12VHPWR/12V-2x6 connector."
                    ),
                ),
            )
        )


class CoolerSocketRule(Rule):
    """Cooler mounting kit must cover the CPU socket."""

    rule_id = "cooler-cpu-socket"
    requires = (C.COOLER, C.CPU)
    spec_keys = ("socket_compatibility", "socket")

    def check(self, parts, policy):
        cooler, cpu = parts[C.COOLER], parts[C.CPU]
        listed = text_or_skip(cooler, "socket_compatibility")
        supported = split_list(listed)
        socket = display_socket(text_or_skip(cpu, "socket"))
        if not supported or not norm(socket):
            raise ValidationSkipped("socket list empty")
        cooler_name = part_name(cooler, "Your cooler")
        cpu_name = part_name(cpu, "Your CPU")

        if norm(socket) in supported:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "Cooler Socket Supported",
                        f"{cooler_name} supports the {socket} socket of {cpu_name}.",
                        "The cooler ships with a mounting kit for this socket.",
                    ),
                )
            )

        sockets = ", ".join(p.strip() for p in re.split(r"[,/;|]", listed) if p.strip())
        return RuleOutcome(
            issues=(
                self.issue(
                    type="Cooler Socket Incompatibility",
                    severity=Severity.ERROR,
                    message=f"Cooler Incompatible: {cooler_name} doesn't support {socket} ({cpu_name})",
                    explanation=(
                        f'INCOMPATIBLE: "{cooler_name}" has no mounting hardware for '
                        f"socket {socket}.\n\nEXACTLY WHAT'S WRONG:\n"
                        f"- Your CPU: {cpu_name} (socket: {socket})\n"
                        f"- Your cooler: {cooler_name} (supports: {sockets})\n"
                        "- Problem: the cooler cannot be clamped onto the CPU."
                    ),
                    fix=fix_options(
                        f"Choose a cooler that lists socket {socket}",
                        f"Choose a CPU with a socket this cooler supports ({sockets})",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the CPU cannot be cooled, so the system "
                        "cannot run."
                    ),
                    recommendation=(
                        "Many coolers support several sockets, and some vendors ship "
                        "an upgrade kit on request; check before buying."
                    ),
                    affected=(C.COOLER, C.CPU),
                ),
            )
        )


class MotherboardCaseFormFactorRule(Rule):
    """Motherboard form factor must be one the case accepts."""

    rule_id = "motherboard-case-form-factor"
    requires = (C.MOTHERBOARD, C.CASE)
    spec_keys = ("form_factor", "motherboard_form_factors")

    def check(self, parts, policy):
        board, case = parts[C.MOTHERBOARD], parts[C.CASE]
        board_ff = form_factor(text_or_skip(board, "form_factor"))
        listed = text_or_skip(case, "motherboard_form_factors")
        supported = [form_factor(p) for p in re.split(r"[,/;|]", listed) if norm(p)]
        if not supported or not board_ff:
            raise ValidationSkipped("form factor list empty")
        board_name = part_name(board, "Your motherboard")
        case_name = part_name(case, "Your case")
        supported_text = ", ".join(supported)

        if board_ff in supported:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "Motherboard Fits Case",
                        f"{case_name} accepts {board_ff} boards like {board_name}.",
                        "The standoff pattern matches the motherboard's mounting holes.",
                    ),
                )
            )

        return RuleOutcome(
            issues=(
                self.issue(
                    type="Motherboard Form Factor Incompatibility",
                    severity=Severity.ERROR,
                    message=(
                        f"Motherboard Won't Fit: {board_name} ({board_ff}) doesn't fit "
                        f"{case_name} (supports {supported_text})"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{board_name}" is {board_ff}, but "{case_name}" '
                        f"only supports {supported_text}.\n\nEXACTLY WHAT'S WRONG:\n"
                        f"- Your motherboard: {board_name} (size: {board_ff})\n"
                        f"- Your case: {case_name} (supports: {supported_text})\n"
                        "- Problem: the mounting holes do not line up with the case "
                        "standoffs and the board may not physically fit."
                    ),
                    fix=fix_options(
                        f"Choose a {supported_text} motherboard",
                        f"Choose a case that supports {board_ff} motherboards",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the motherboard cannot be mounted in this case."
                    ),
                    recommendation=(
                        "Common sizes are ATX, Micro-ATX and Mini-ITX; a case "
                        "usually accepts its own size and smaller."
                    ),
                ),
            )
        )


class PsuCaseFormFactorRule(Rule):
    """PSU form factor must fit the case PSU bay."""

    rule_id = "psu-case-form-factor"
    requires = (C.PSU, C.CASE)
    spec_keys = ("psu_form_factor_type", "psu_form_factor")

    def check(self, parts, policy):
        psu, case = parts[C.PSU], parts[C.CASE]
        psu_ff = form_factor(text_or_skip(psu, "psu_form_factor_type"))
        listed = text_or_skip(case, "psu_form_factor")
        supported = [form_factor(p) for p in re.split(r"[,/;|]", listed) if norm(p)]
        if not supported or not psu_ff:
            raise ValidationSkipped("PSU form factor list empty")
        psu_name = part_name(psu, "Your PSU")
        case_name = part_name(case, "Your case")
        supported_text = ", ".join(supported)

        if psu_ff in supported:
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        "PSU Fits Case",
                        f"{case_name} has a {psu_ff} bay for {psu_name}.",
                        "The PSU mounting holes and bay dimensions match.",
                    ),
                )
            )

        return RuleOutcome(
            issues=(
                self.issue(
                    type="PSU Form Factor Incompatibility",
                    severity=Severity.ERROR,
                    message=(
                        f"PSU Won't Fit: {psu_name} ({psu_ff}) doesn't fit {case_name} "
                        f"(supports {supported_text})"
                    ),
                    explanation=(
                        f'INCOMPATIBLE: "{psu_name}" is a {psu_ff} unit, but "{case_name}" '
                        f"only takes {supported_text} power supplies.\n\n"
                        "EXACTLY WHAT'S WRONG:\n"
                        f"- Your PSU: {psu_name} (size: {psu_ff})\n"
                        f"- Your case: {case_name} (supports: {supported_text})\n"
                        "- Problem: the unit does not fit the bay or its screw pattern."
                    ),
                    fix=fix_options(
                        f"Choose a {supported_text} power supply",
                        f"Choose a case with a {psu_ff} power supply bay",
                    ),
                    severity_explanation=(
                        "BLOCKING ERROR: the PSU cannot be installed, so the "
                        "system cannot be powered."
                    ),
                    recommendation=(
                        "ATX is the common size; small-form-factor cases usually "
                        "require SFX or SFX-L units."
                    ),
                ),
            )
        )


# ==================== PERFORMANCE WARNINGS ====================
class RamSpeedRule(Rule):
    """RAM rated faster than the board supports runs downclocked."""

    rule_id = "ram-speed-downclock"
    requires = (C.RAM, C.MOTHERBOARD)
    spec_keys = ("ram_speed_mhz", "speed", "max_ram_speed_mhz")

    def check(self, parts, policy):
        ram, board = parts[C.RAM], parts[C.MOTHERBOARD]
        speed = number_or_skip(ram, "ram_speed_mhz")
        if speed is None:
            m = re.search(r"(\d{3,5})", get_text(ram, "speed") or "")
            speed = float(m.group(1)) if m else None
        limit = number_or_skip(board, "max_ram_speed_mhz")
        known_or_skip(speed, limit)
        if speed <= limit:
            return RuleOutcome()
        ram_name = part_name(ram, "Your RAM")
        board_name = part_name(board, "Your motherboard")
        return RuleOutcome(
            issues=(
                self.issue(
                    type="RAM Speed Downclocked",
                    severity=Severity.WARNING,
                    message=(
                        f"RAM Downclocked: {ram_name} ({fmt_num(speed)}MHz) will run at "
                        f"{fmt_num(limit)}MHz on {board_name}"
                    ),
                    explanation=(
                        f'"{ram_name}" is rated for {fmt_num(speed)}MHz, but '
                        f'"{board_name}" supports at most {fmt_num(limit)}MHz. The '
                        "memory falls back to the board's maximum speed."
                    ),
                    fix=fix_options(
                        f"Select RAM rated at {fmt_num(limit)}MHz to avoid paying for unused speed",
                        f"Choose a motherboard that supports {fmt_num(speed)}MHz memory",
                    ),
                    severity_explanation=(
                        "Performance impact is typically under 5% for most workloads."
                    ),
                    recommendation=(
                        "RAM is backward compatible with lower speeds; this only "
                        "matters for memory-sensitive workloads."
                    ),
                ),
            )
        )


class CoolerTdpRule(Rule):
    """Cooler TDP rating should cover the CPU's TDP."""

    rule_id = "cooler-tdp-rating"
    requires = (C.CPU, C.COOLER)
    spec_keys = ("tdp_watts", "tdp_w", "tdp_rating_watts")

    def check(self, parts, policy):
        cpu, cooler = parts[C.CPU], parts[C.COOLER]
        tdp = number_or_skip(cpu, "tdp_watts")
        if tdp is None:
            tdp = number_or_skip(cpu, "tdp_w")
        rating = number_or_skip(cooler, "tdp_rating_watts")
        known_or_skip(tdp, rating)
        cpu_name = part_name(cpu, "Your CPU")
        cooler_name = part_name(cooler, "Your cooler")

        if tdp > rating:
            excess = tdp - rating
            target = tdp + policy.cooler_recommended_margin_watts
            return RuleOutcome(
                issues=(
                    self.issue(
                        type="Cooler Underpowered for CPU",
                        severity=Severity.WARNING,
                        message=(
                            f"Cooler Underpowered: {cooler_name} is rated {fmt_num(rating)}W "
                            f"but {cpu_name} has a {fmt_num(tdp)}W TDP (+{fmt_num(excess)}W)"
                        ),
                        explanation=(
                            f'"{cooler_name}" can dissipate about {fmt_num(rating)}W, '
                            f'while "{cpu_name}" is specified at {fmt_num(tdp)}W. Under '
                            "sustained load the CPU will run hot."
                        ),
                        fix=fix_options(
                            f"Select a cooler rated for at least {fmt_num(target)}W",
                            "Choose a CPU with a TDP at or below "
                            f"{fmt_num(rating)}W",
                        ),
                        severity_explanation=(
                            "Inadequate cooling causes thermal throttling, noise "
                            "and reduced performance."
                        ),
                        recommendation=(
                            "Leave some margin between the cooler rating and CPU "
                            "TDP, especially if you plan to overclock."
                        ),
                    ),
                )
            )

        if rating - tdp > tdp * policy.cooler_overspec_ratio:
            return RuleOutcome(
                issues=(
                    self.issue(
                        type="Cooler Over-specified",
                        severity=Severity.INFO,
                        message=(
                            f"Cooler Over-specified: {cooler_name} ({fmt_num(rating)}W) "
                            f"far exceeds {cpu_name} ({fmt_num(tdp)}W)"
                        ),
                        explanation=(
                            f'"{cooler_name}" is rated well above what "{cpu_name}" '
                            "needs. Cooling will be excellent but the extra capacity "
                            "is unused."
                        ),
                        fix=fix_options(
                            f"For cost savings, choose a cooler rated between "
                            f"{fmt_num(tdp)}W and "
                            f"{fmt_num(tdp + policy.cooler_suggest_span_watts)}W",
                            "Keep it if you plan to upgrade to a hotter CPU later",
                        ),
                        severity_explanation="No performance issue, only extra cost.",
                        recommendation=(
                            "Match cooler capacity to the CPU unless you expect a "
                            "future upgrade."
                        ),
                    ),
                )
            )
        return RuleOutcome()


class TierBalanceRule(Rule):
    """CPU and GPU tiers far apart signal a bottleneck."""

    rule_id = "cpu-gpu-tier-balance"
    requires = (C.CPU, C.GPU)
    spec_keys = ("cpu_tier", "gpu_tier")

    def check(self, parts, policy):
        cpu, gpu = parts[C.CPU], parts[C.GPU]
        cpu_tier = text_or_skip(cpu, "cpu_tier")
        gpu_tier = text_or_skip(gpu, "gpu_tier")
        cpu_idx, gpu_idx = tier_index(cpu_tier), tier_index(gpu_tier)
        known_or_skip(cpu_idx, gpu_idx)
        if abs(gpu_idx - cpu_idx) < policy.tier_gap_threshold:
            return RuleOutcome()
        cpu_name = part_name(cpu, "Your CPU")
        gpu_name = part_name(gpu, "Your GPU")

        if gpu_idx > cpu_idx:
            return RuleOutcome(
                issues=(
                    self.issue(
                        type="CPU Bottleneck Risk",
                        severity=Severity.WARNING,
                        message=(
                            f"CPU Bottleneck Risk: {cpu_name} ({cpu_tier}) may hold back "
                            f"{gpu_name} ({gpu_tier})"
                        ),
                        explanation=(
                            f"The CPU is {gpu_idx - cpu_idx} tiers below the GPU. In many "
                            "games the CPU becomes the limiting factor and the GPU is "
                            "left partly idle."
                        ),
                        fix=fix_options(
                            f"Select a CPU closer to the {gpu_tier} tier",
                            f"Select a less expensive GPU closer to the {cpu_tier} tier",
                        ),
                        severity_explanation=(
                            "A CPU bottleneck can cut GPU utilisation by 15-30%."
                        ),
                        recommendation=(
                            "Balance CPU and GPU tiers for gaming; high-refresh "
                            "play is especially CPU-bound."
                        ),
                    ),
                )
            )

        return RuleOutcome(
            issues=(
                self.issue(
                    type="GPU Underpowered",
                    severity=Severity.INFO,
                    message=(
                        f"GPU Underpowered: {gpu_name} ({gpu_tier}) is well below "
                        f"{cpu_name} ({cpu_tier})"
                    ),
                    explanation=(
                        f"The GPU is {cpu_idx - gpu_idx} tiers below the CPU. Gaming "
                        "performance will be limited by the GPU."
                    ),
                    fix=fix_options(
                        f"If gaming matters, select a GPU closer to the {cpu_tier} tier",
                        "Keep it for productivity builds where the CPU does the work",
                    ),
                    severity_explanation="The GPU is fully used; peak gaming FPS is limited.",
                    recommendation="A reasonable trade-off for CPU-heavy workloads.",
                ),
            )
        )


# ==================== INFORMATIONAL ====================
class GpuPcieGenerationRule(Rule):
    """A newer-generation GPU in an older slot runs at the slot's speed."""

    rule_id = "gpu-motherboard-pcie-generation"
    requires = (C.GPU, C.MOTHERBOARD)
    spec_keys = ("pcie_generation",)

    def check(self, parts, policy):
        gpu, board = parts[C.GPU], parts[C.MOTHERBOARD]
        gpu_gen = pcie_generation(get_text(gpu, "pcie_generation"))
        board_gen = pcie_generation(get_text(board, "pcie_generation"))
        known_or_skip(gpu_gen, board_gen)
        if gpu_gen <= board_gen:
            return RuleOutcome()
        gpu_name = part_name(gpu, "Your GPU")
        board_name = part_name(board, "Your motherboard")
        return RuleOutcome(
            issues=(
                self.issue(
                    type="PCIe Generation Mismatch",
                    severity=Severity.INFO,
                    message=(
                        f"PCIe Generation Mismatch: {gpu_name} (PCIe {fmt_num(gpu_gen)}) "
                        f"in a PCIe {fmt_num(board_gen)} slot on {board_name}"
                    ),
                    explanation=(
                        f"The GPU supports PCIe {fmt_num(gpu_gen)}, but the slot is PCIe "
                        f"{fmt_num(board_gen)}. PCIe is backward compatible, so the card "
                        "works at the slot's bandwidth."
                    ),
                    fix=fix_options(
                        f"Choose a motherboard with a PCIe {fmt_num(gpu_gen)} x16 slot for full bandwidth",
                        "Keep this pairing; real-world gaming impact is usually under 5%",
                    ),
                    severity_explanation="Bandwidth is reduced; the build still works.",
                    recommendation="No action needed for most builds.",
                ),
            )
        )


class StoragePcieGenerationRule(Rule):
    """An NVMe drive faster than the board's M.2 slot is capped."""

    rule_id = "storage-motherboard-pcie-generation"
    requires = (C.STORAGE, C.MOTHERBOARD)
    spec_keys = ("nvme_pcie_gen", "pcie_generation")

    def check(self, parts, policy):
        storage, board = parts[C.STORAGE], parts[C.MOTHERBOARD]
        drive_gen = pcie_generation(
            get_text(storage, "nvme_pcie_gen") or get_text(storage, "pcie_generation")
        )
        board_gen = pcie_generation(get_text(board, "nvme_pcie_gen"))
        known_or_skip(drive_gen, board_gen)
        if drive_gen <= board_gen:
            return RuleOutcome()
        drive_name = part_name(storage, "Your drive")
        board_name = part_name(board, "Your motherboard")
        return RuleOutcome(
            issues=(
                self.issue(
                    type="NVMe Speed Limitation",
                    severity=Severity.INFO,
                    message=(
                        f"NVMe Speed Limitation: {drive_name} (PCIe {fmt_num(drive_gen)}) "
                        f"is capped by the PCIe {fmt_num(board_gen)} M.2 slot on {board_name}"
                    ),
                    explanation=(
                        f"The drive supports PCIe {fmt_num(drive_gen)}, but the "
                        f"motherboard's M.2 slot runs at PCIe {fmt_num(board_gen)}. The "
                        "drive works at the slot's lower bandwidth."
                    ),
                    fix=fix_options(
                        f"Choose a motherboard with a PCIe {fmt_num(drive_gen)} M.2 slot",
                        f"Choose a cheaper PCIe {fmt_num(board_gen)} drive with the same capacity",
                    ),
                    severity_explanation=(
                        "Performance only: PCIe 3.0 NVMe ~3,500 MB/s, 4.0 ~7,000 MB/s, "
                        "5.0 ~14,000 MB/s."
                    ),
                    recommendation=(
                        "For most users the difference is imperceptible outside "
                        "large file transfers."
                    ),
                ),
            )
        )


class EccMemoryRule(Rule):
    """ECC memory on a board without ECC support runs in non-ECC mode."""

    rule_id = "ram-motherboard-ecc"
    requires = (C.RAM, C.MOTHERBOARD)
    spec_keys = ("ecc_support",)

    def check(self, parts, policy):
        ram, board = parts[C.RAM], parts[C.MOTHERBOARD]
        if get_flag(ram, "ecc_support") is not True:
            return RuleOutcome()
        if get_flag(board, "ecc_support") is not False:
            return RuleOutcome()
        ram_name = part_name(ram, "Your RAM")
        board_name = part_name(board, "Your motherboard")
        return RuleOutcome(
            issues=(
                self.issue(
                    type="ECC RAM on Non-ECC Board",
                    severity=Severity.INFO,
                    message=f"ECC Disabled: {ram_name} will run without ECC on {board_name}",
                    explanation=(
                        f'"{ram_name}" supports error correction, but "{board_name}" '
                        "does not. The memory works normally without ECC."
                    ),
                    fix=fix_options(
                        "Choose non-ECC RAM for better value on this board",
                        "Choose a workstation motherboard with ECC support",
                    ),
                    severity_explanation="ECC is disabled; the RAM still functions.",
                    recommendation=(
                        "ECC matters for servers and workstations, rarely for "
                        "gaming builds."
                    ),
                ),
            )
        )


DEFAULT_RULES = (
    SocketRule(),
    MemoryGenerationRule(),
    PowerHeadroomRule(),
    GpuClearanceRule(),
    CoolerClearanceRule(),
    PowerConnectorRule(),
    CoolerSocketRule(),
    MotherboardCaseFormFactorRule(),
    PsuCaseFormFactorRule(),
    RamSpeedRule(),
    CoolerTdpRule(),
    TierBalanceRule(),
    GpuPcieGenerationRule(),
    StoragePcieGenerationRule(),
    EccMemoryRule(),
)

DEFAULT_REGISTRY = RuleRegistry(DEFAULT_RULES)
