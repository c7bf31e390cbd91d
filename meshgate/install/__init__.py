"""Provisioning: fetch release archives, extract, locate and install the binaries."""

from meshgate.install.installer import DependencySpec, dependency_specs, ensure_installed, install_all

__all__ = ["DependencySpec", "dependency_specs", "ensure_installed", "install_all"]
