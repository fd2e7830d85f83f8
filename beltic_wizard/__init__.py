"""Beltic Wizard

Sets up Beltic agent credentials in a project, starting with an
interactive login to the Beltic platform.
"""

from importlib.metadata import PackageNotFoundError, version

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    __version__ = version("beltic-wizard")
except PackageNotFoundError:
    # Running from a source checkout
    __version__ = "0.0.0"
__author__ = "Beltic"
