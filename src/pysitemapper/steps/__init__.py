"""Pipeline steps for pySitemapper."""

from pysitemapper.steps.generate import GenerateStep
from pysitemapper.steps.load import LoadStep

__all__ = ["GenerateStep", "LoadStep"]
