from loader_app.installer.options import InstallOptions
from loader_app.installer.runner import CommandError, CommandRunner
from loader_app.installer.steps import InstallError, Installer

__all__ = ["InstallOptions", "CommandError", "CommandRunner", "InstallError", "Installer"]
