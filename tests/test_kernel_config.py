"""Tests for kernel configuration fragments."""

from iso_creator.hardware.kernel_config import (
    generate_kernel_config,
    modprobe_blacklist_conf,
    modules_load_conf,
    validate_kernel_config,
)
from iso_creator.types import BuildMode, ModuleRecommendation

MODULES = [
    ModuleRecommendation("nouveau", "Open-source NVIDIA", False),
    ModuleRecommendation("nvidia", "GPU: NVIDIA", True),
    ModuleRecommendation("r8169", "Ethernet: Realtek", True),
]


class TestGenerateKernelConfig:
    """Tests for generate_kernel_config."""

    def test_localversion_first(self) -> None:
        """The fragment starts with the local version string."""
        config = generate_kernel_config(BuildMode.DESKTOP, [])
        assert config.splitlines()[0] == 'CONFIG_LOCALVERSION="-iso-creator"'
        assert config.endswith("\n")

    def test_server_mode_disables_desktop_subsystems(self) -> None:
        """Server builds turn off graphics, sound, wlan and bluetooth."""
        lines = generate_kernel_config(BuildMode.SERVER, []).splitlines()
        assert "# CONFIG_DRM is not set" in lines
        assert "# CONFIG_SND is not set" in lines
        assert "CONFIG_OVERLAY_FS=y" in lines
        assert "CONFIG_NAMESPACES=y" in lines

    def test_desktop_mode_enables_gpu_and_audio(self) -> None:
        """Desktop builds enable GPU and audio drivers."""
        lines = generate_kernel_config(BuildMode.DESKTOP, []).splitlines()
        assert "CONFIG_DRM_I915=m" in lines
        assert "CONFIG_SND_HDA_INTEL=m" in lines
        assert not any(line.startswith("# CONFIG_DRM") for line in lines)

    def test_only_enabled_modules_added(self) -> None:
        """Disabled modules are not built."""
        lines = generate_kernel_config(BuildMode.SERVER, MODULES).splitlines()
        assert "CONFIG_NVIDIA=m" in lines
        assert "CONFIG_R8169=m" in lines
        assert "CONFIG_NOUVEAU=m" not in lines


class TestModuleFiles:
    """Tests for modules-load.d and modprobe.d renderers."""

    def test_modules_load_lists_enabled(self) -> None:
        """Enabled modules are listed one per line."""
        assert modules_load_conf(MODULES) == "nvidia\nr8169\n"

    def test_blacklist_lists_disabled(self) -> None:
        """Disabled modules are blacklisted with their reason."""
        assert modprobe_blacklist_conf(MODULES) == (
            "# Open-source NVIDIA\nblacklist nouveau\n"
        )

    def test_empty_blacklist(self) -> None:
        """No disabled modules means an empty blacklist."""
        assert modprobe_blacklist_conf(MODULES[1:]) == ""


class TestValidateKernelConfig:
    """Tests for validate_kernel_config."""

    def test_generated_fragments_pass(self) -> None:
        """Fragments from generate_kernel_config pass in both modes."""
        for mode in (BuildMode.DESKTOP, BuildMode.SERVER):
            config = generate_kernel_config(mode, MODULES)
            assert validate_kernel_config(config, mode) == []

    def test_disabled_critical_options(self) -> None:
        """Disabling a critical option is reported in either spelling."""
        config = (
            'CONFIG_LOCALVERSION="-x"\n'
            "# CONFIG_NET is not set\n"
            "CONFIG_PRINTK=n\n"
            "CONFIG_EXT4_FS=m\n"
        )
        problems = validate_kernel_config(config, BuildMode.DESKTOP)
        assert problems == [
            "CONFIG_NET is disabled, the kernel may not boot",
            "CONFIG_PRINTK is disabled, the kernel may not boot",
        ]

    def test_unmentioned_options_are_left_to_defconfig(self) -> None:
        """A desktop fragment that omits graphics and sound passes."""
        config = 'CONFIG_LOCALVERSION="-x"\nCONFIG_R8169=m\n'
        assert validate_kernel_config(config, BuildMode.DESKTOP) == []

    def test_server_requirements(self) -> None:
        """Server fragments need graphics and sound off, netfilter and cgroups on."""
        config = (
            'CONFIG_LOCALVERSION="-x"\n'
            "CONFIG_DRM=y\n"
            "# CONFIG_SND is not set\n"
            "CONFIG_NETFILTER=y\n"
        )
        problems = validate_kernel_config(config, BuildMode.SERVER)
        assert problems == [
            "CONFIG_DRM should be disabled for server mode",
            "CONFIG_CGROUPS should be enabled for server mode",
        ]

    def test_desktop_graphics_disabled(self) -> None:
        """Desktop fragments must not turn graphics off."""
        config = 'CONFIG_LOCALVERSION="-x"\n# CONFIG_DRM is not set\n'
        problems = validate_kernel_config(config, BuildMode.DESKTOP)
        assert problems == ["CONFIG_DRM should not be disabled for desktop mode"]

    def test_missing_localversion(self) -> None:
        """The local version string is required."""
        problems = validate_kernel_config("CONFIG_R8169=m\n", BuildMode.DESKTOP)
        assert problems == ["CONFIG_LOCALVERSION is missing"]
