"""服务层模块."""

from shopbanner.services.asset_resolver import AssetResolver
from shopbanner.services.banner_renderer import BannerRenderer, find_font
from shopbanner.services.delivery import archive_file_name, build_archive, personalize_message
from shopbanner.services.rule_set import generate_rule_set

__all__ = [
    "AssetResolver",
    "BannerRenderer",
    "find_font",
    "archive_file_name",
    "build_archive",
    "personalize_message",
    "generate_rule_set",
]
