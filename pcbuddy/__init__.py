"""PC Buddy — Windows maintenance toolkit with a privileged execution layer"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("pcbuddy")
except PackageNotFoundError:
    __version__ = "dev"

__author__ = "PC Buddy"
