"""Pipeline steps that wrap external package managers and the image builder."""

from .assets import AssetCompiler
from .dependencies import DependencyInstaller
from .image import ImageBuilder, build_command, cache_ref_for, merge_build_args, tag_set

__all__ = [
    "AssetCompiler",
    "DependencyInstaller",
    "ImageBuilder",
    "build_command",
    "cache_ref_for",
    "merge_build_args",
    "tag_set",
]
