"""Kernel configuration fragments derived from module recommendations.

The fragment is meant to be merged on top of an x86_64 defconfig with
``scripts/kconfig/merge_config.sh``; it only lists what differs.
"""

from __future__ import annotations

from collections.abc import Iterable

from iso_creator.types import BuildMode, ModuleRecommendation

LOCALVERSION = "-iso-creator"

CRITICAL_OPTIONS = (
    "CONFIG_NET",
    "CONFIG_INET",
    "CONFIG_EXT4_FS",
    "CONFIG_PROC_FS",
    "CONFIG_SYSFS",
    "CONFIG_PRINTK",
)

SERVER_DISABLED = ("CONFIG_DRM", "CONFIG_SND", "CONFIG_WLAN", "CONFIG_BT")
SERVER_ENABLED = (
    "CONFIG_NETFILTER=y",
    "CONFIG_CGROUPS=y",
    "CONFIG_NAMESPACES=y",
    "CONFIG_NET_NS=y",
    "CONFIG_VETH=y",
    "CONFIG_BRIDGE=y",
    "CONFIG_NF_NAT=y",
    "CONFIG_OVERLAY_FS=y",
)
DESKTOP_ENABLED = (
    "CONFIG_DRM_I915=m",
    "CONFIG_DRM_AMDGPU=m",
    "CONFIG_DRM_NOUVEAU=m",
    "CONFIG_SND_HDA_INTEL=m",
    "CONFIG_WLAN=y",
    "CONFIG_BT=y",
    "CONFIG_INPUT_EVDEV=y",
)


def generate_kernel_config(
    mode: BuildMode,
    modules: Iterable[ModuleRecommendation],
) -> str:
    """Generate a kernel .config fragment.

    Args:
        mode: Desktop or server build.
        modules: Module recommendations; only enabled ones are added.

    Returns:
        Fragment text, one option per line.
    """
    lines = [f'CONFIG_LOCALVERSION="{LOCALVERSION}"']

    if mode is BuildMode.SERVER:
        lines.extend(f"# {opt} is not set" for opt in SERVER_DISABLED)
        lines.extend(SERVER_ENABLED)
    else:
        lines.extend(DESKTOP_ENABLED)

    for module in modules:
        if module.enabled:
            lines.append(f"CONFIG_{module.module_name.upper()}=m")

    return "\n".join(lines) + "\n"


def modules_load_conf(modules: Iterable[ModuleRecommendation]) -> str:
    """Render a modules-load.d file listing enabled modules."""
    names = [m.module_name for m in modules if m.enabled]
    return "".join(f"{name}\n" for name in names)


def modprobe_blacklist_conf(modules: Iterable[ModuleRecommendation]) -> str:
    """Render a modprobe.d blacklist for excluded modules."""
    lines = [
        f"# {m.reason}\nblacklist {m.module_name}\n" for m in modules if not m.enabled
    ]
    return "".join(lines)


def _parse_options(config_text: str) -> dict[str, str]:
    options: dict[str, str] = {}
    for raw in config_text.splitlines():
        line = raw.strip()
        if line.startswith("# CONFIG_") and line.endswith(" is not set"):
            options[line[2 : -len(" is not set")]] = "n"
        elif line.startswith("CONFIG_") and "=" in line:
            name, _, value = line.partition("=")
            options[name] = value
    return options


def validate_kernel_config(config_text: str, mode: BuildMode) -> list[str]:
    """Check a kernel .config fragment before it is shipped.

    Options the fragment does not mention are left to the defconfig, so
    only explicit settings can fail a check. Critical options must never
    be disabled. Server fragments must disable graphics and sound and
    enable netfilter and cgroups; desktop fragments must not disable
    graphics or sound.

    Args:
        config_text: Fragment as produced by generate_kernel_config().
        mode: Desktop or server build.

    Returns:
        Problems found, empty if the fragment passes.
    """
    options = _parse_options(config_text)
    problems = []

    def enabled(name: str) -> bool:
        return options.get(name) in ("y", "m")

    for name in CRITICAL_OPTIONS:
        if options.get(name) == "n":
            problems.append(f"{name} is disabled, the kernel may not boot")

    if mode is BuildMode.SERVER:
        for name in ("CONFIG_DRM", "CONFIG_SND"):
            if options.get(name) != "n":
                problems.append(f"{name} should be disabled for server mode")
        for name in ("CONFIG_NETFILTER", "CONFIG_CGROUPS"):
            if options.get(name) != "y":
                problems.append(f"{name} should be enabled for server mode")
    else:
        for name in ("CONFIG_DRM", "CONFIG_SND"):
            if name in options and not enabled(name):
                problems.append(f"{name} should not be disabled for desktop mode")

    if "CONFIG_LOCALVERSION" not in options:
        problems.append("CONFIG_LOCALVERSION is missing")

    return problems


__all__ = [
    "CRITICAL_OPTIONS",
    "LOCALVERSION",
    "generate_kernel_config",
    "modprobe_blacklist_conf",
    "modules_load_conf",
    "validate_kernel_config",
]
