"""店铺横幅个性化合成工具.

在底图上摆放 Logo 和文字图层，为每个店铺批量生成个性化横幅。
"""

from shopbanner.utils.constants import APP_VERSION

__version__ = APP_VERSION
