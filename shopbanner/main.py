"""店铺横幅个性化合成工具 - 应用入口.

批量生成:
    python -m shopbanner.main layout.json recipients.json base.png -o banners.zip

编辑布局（打开画布窗口，关闭时保存布局）:
    python -m shopbanner.main layout.json recipients.json base.png --edit
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from shopbanner.app import BannerApp
from shopbanner.models.banner_layout import BannerLayout
from shopbanner.models.recipient import Recipient, filter_active
from shopbanner.services.delivery import build_archive
from shopbanner.services.rule_set import generate_rule_set
from shopbanner.utils.constants import APP_NAME, APP_VERSION
from shopbanner.utils.error_handler import get_user_friendly_message
from shopbanner.utils.exceptions import AppException
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

_RECIPIENTS_ADAPTER = TypeAdapter(list[Recipient])


def build_parser() -> argparse.ArgumentParser:
    """命令行参数."""
    parser = argparse.ArgumentParser(prog="shopbanner", description=APP_NAME)
    parser.add_argument("layout", type=Path, help="布局 JSON 文件")
    parser.add_argument("recipients", type=Path, help="店铺列表 JSON 文件")
    parser.add_argument("base_image", type=Path, help="底图文件")
    parser.add_argument("-o", "--output", type=Path, default=None, help="输出 zip 路径")
    parser.add_argument("--name", default=None, help="横幅名称（压缩包内文件名前缀）")
    parser.add_argument("--rules", action="store_true", help="打印个性化规则说明")
    parser.add_argument("--edit", action="store_true", help="打开画布编辑布局")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def load_recipients(path: Path) -> list[Recipient]:
    """读取店铺列表，只保留 active 店铺."""
    data = json.loads(path.read_text(encoding="utf-8"))
    recipients = _RECIPIENTS_ADAPTER.validate_python(data)
    active = filter_active(recipients)
    if len(active) < len(recipients):
        logger.info(f"跳过 {len(recipients) - len(active)} 个非 active 店铺")
    return active


async def run_batch(
    layout: BannerLayout,
    recipients: list[Recipient],
    base_image: bytes,
    output: Path,
    base_name: str,
) -> int:
    """执行批量生成并写出压缩包."""
    async with BannerApp() as app:
        report = await app.generator.generate(layout, base_image, recipients)

    print(report.summary())
    if report.succeeded == 0:
        logger.warning("没有生成任何横幅，请检查店铺是否上传了 Logo")
        return 1

    output.write_bytes(build_archive(report, base_name))
    logger.info(f"已写出: {output}")
    return 0


def run_editor(layout: BannerLayout, layout_path: Path, base_image: Path) -> int:
    """打开画布编辑布局，窗口关闭后保存."""
    from PIL import Image
    from PyQt6.QtWidgets import QApplication

    from shopbanner.services.banner_renderer import BannerRenderer
    from shopbanner.ui.banner_canvas import BannerCanvas

    qt_app = QApplication(sys.argv)
    qt_app.setApplicationName(APP_NAME)
    qt_app.setApplicationVersion(APP_VERSION)

    with Image.open(base_image) as img:
        base = img.convert("RGBA")

    canvas = BannerCanvas(BannerRenderer(), layout)
    canvas.set_base_image(base)
    canvas.setWindowTitle(f"{APP_NAME} - {layout_path.name}")
    canvas.resize(1000, 600)
    canvas.show()

    exit_code = qt_app.exec()
    layout.save_to_file(str(layout_path))
    logger.info(f"布局已保存: {layout_path}")
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """应用主入口函数.

    Returns:
        退出码，0 表示正常退出
    """
    args = build_parser().parse_args(argv)
    logger.info(f"启动{APP_NAME} {APP_VERSION}")

    try:
        layout = BannerLayout.from_file(str(args.layout)) if args.layout.exists() else BannerLayout()

        if args.edit:
            return run_editor(layout, args.layout, args.base_image)

        if args.rules:
            print(generate_rule_set(layout))

        recipients = load_recipients(args.recipients)
        base_image = args.base_image.read_bytes()
        base_name = args.name or args.base_image.stem
        output = args.output or Path(f"{base_name}.zip")
        return asyncio.run(run_batch(layout, recipients, base_image, output, base_name))

    except AppException as e:
        logger.error(f"生成失败: {e}")
        print(get_user_friendly_message(e), file=sys.stderr)
        return 1

    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"输入文件无效: {e}")
        print(f"输入文件无效: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
