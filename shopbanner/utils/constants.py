"""应用常量定义."""

import os
from pathlib import Path

# ===================
# 应用信息
# ===================
APP_NAME = "店铺横幅个性化合成工具"
APP_VERSION = "0.3.0"

# ===================
# 路径常量
# ===================
# 应用数据目录（可通过 SHOPBANNER_HOME 覆盖）
APP_DATA_DIR = Path(os.environ.get("SHOPBANNER_HOME", Path.home() / ".shop-banner"))

# 日志目录
LOG_DIR = APP_DATA_DIR / "logs"

# ===================
# 图层元素取值范围
# ===================
MIN_POSITION = 0.0
MAX_POSITION = 100.0

# scale 的下界为开区间 0，实际取 1
MIN_ELEMENT_SCALE = 1.0
MAX_ELEMENT_SCALE = 200.0

MIN_ROTATION = -180.0
MAX_ROTATION = 180.0

MIN_OPACITY = 0.0
MAX_OPACITY = 100.0

MIN_FONT_WEIGHT = 100
MAX_FONT_WEIGHT = 900
FONT_WEIGHT_STEP = 100

# 字间距上下限（像素）
LETTER_SPACING_LIMIT = 200.0

# 字重达到该值时使用粗体字形
BOLD_FONT_WEIGHT = 600

# ===================
# 元素默认值
# ===================
DEFAULT_POSITION = 50.0
DEFAULT_LOGO_SCALE = 15.0
DEFAULT_TEXT_SCALE = 30.0
DEFAULT_TEXT_TEMPLATE = "{{shopName}}"
DEFAULT_TEXT_COLOR = "#ffffff"
DEFAULT_FONT_WEIGHT = 400
DEFAULT_FONT_FAMILY = "Roboto"

# ===================
# 渲染常量
# ===================
# 文字字号 = scale/100 * 画布高度 / TEXT_SIZE_DIVISOR
TEXT_SIZE_DIVISOR = 15

# 输出格式
OUTPUT_FORMAT = "PNG"
OUTPUT_MIME_TYPE = "image/png"

# 单个素材最大字节数 (20MB)
MAX_ASSET_BYTES = 20 * 1024 * 1024

# ===================
# 批量生成
# ===================
DEFAULT_CONCURRENT_LIMIT = 20
MAX_CONCURRENT_LIMIT = 64

# 素材下载超时（秒）
DEFAULT_ASSET_TIMEOUT = 15.0

# ===================
# 交互
# ===================
# 拖拽生效的最小像素位移
DRAG_THRESHOLD_PX = 3.0

# 旋转手柄静止位置（元素正上方）对应 0°
ROTATE_HANDLE_OFFSET_DEG = 90.0
