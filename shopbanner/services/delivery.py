"""横幅交付辅助.

生成结果交给外部系统之前的整理工作：邮件标题/正文个性化、打包下载。
邮件发送、对象存储上传由外部系统负责。
"""

from __future__ import annotations

import html
import io
import re
import zipfile

from shopbanner.core.placeholders import substitute_placeholders
from shopbanner.models.recipient import Recipient
from shopbanner.models.render_result import BatchReport
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_BANNER_NAME = "banner"

# 文件名中不允许出现的字符
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def personalize_message(template: str, recipient: Recipient, as_html: bool = False) -> str:
    """个性化邮件标题或正文.

    Args:
        template: 含占位符的模板
        recipient: 店铺
        as_html: 为 True 时转义店铺数据并将换行转为 <br>

    Returns:
        个性化后的文字
    """
    if not as_html:
        return substitute_placeholders(template, recipient)

    escaped = Recipient.model_validate(
        {
            **recipient.model_dump(),
            "name": html.escape(recipient.name),
            "address": html.escape(recipient.address),
            "phone": html.escape(recipient.phone),
            "email": html.escape(recipient.email),
        }
    )
    return substitute_placeholders(template, escaped).replace("\n", "<br>")


def archive_file_name(base_name: str, shop_name: str) -> str:
    """压缩包内的文件名: {base_name}_{店铺名（空格换成下划线）}.png."""
    base = _UNSAFE_FILENAME_CHARS.sub("_", base_name.strip()) or DEFAULT_BANNER_NAME
    shop = _UNSAFE_FILENAME_CHARS.sub("_", shop_name.strip()).replace(" ", "_")
    return f"{base}_{shop}.png"


def build_archive(report: BatchReport, base_name: str = DEFAULT_BANNER_NAME) -> bytes:
    """将批量结果中成功的横幅打包为 zip.

    重名时追加序号（_2、_3 ...），保证每个成功结果都在包内。

    Args:
        report: 批量报告
        base_name: 横幅名称前缀

    Returns:
        zip 字节
    """
    buffer = io.BytesIO()
    used: set[str] = set()

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for result in report.successes:
            name = archive_file_name(base_name, result.recipient_name or result.recipient_id)
            if name in used:
                stem = name[: -len(".png")]
                counter = 2
                while f"{stem}_{counter}.png" in used:
                    counter += 1
                name = f"{stem}_{counter}.png"
            used.add(name)
            archive.writestr(name, result.image or b"")

    logger.info(f"打包完成: {len(used)} 个横幅")
    return buffer.getvalue()
