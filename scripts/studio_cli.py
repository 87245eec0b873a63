#!/usr/bin/env python3
"""命令行生成工具 - 驱动编辑面板会话并管理本地历史

示例:
    python scripts/studio_cli.py generate "a red fox in snow" --aspect-ratio 16:9 --resolution 720p
    python scripts/studio_cli.py generate "make it watercolor" --image fox.png --reference style.jpg
    python scripts/studio_cli.py history list
    python scripts/studio_cli.py history clear
"""

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import settings
from models.images import AspectRatio, EditorMode, ResolutionTier
from services.enhance_service import PromptEnhanceService
from services.history_service import HistoryStore
from services.image_service import ImageService
from services.preference_service import PreferenceService
from services.studio_service import StudioSession, default_draft
from utils.exceptions import BusinessException
from utils.images import prepare_image_asset
from utils.logger import logger
from utils.storage import FileStorage


def load_image(path: str) -> str:
    """读取本地图片并校验，返回 data URI"""
    file_path = Path(path)
    content_type = mimetypes.guess_type(file_path.name)[0]
    asset = prepare_image_asset(file_path.read_bytes(), content_type, file_path.name)
    return asset.data_url


async def run_generate(args, history: HistoryStore) -> int:
    source = EditorMode.I2I if args.image else EditorMode.T2I
    session = StudioSession(source, ImageService(settings), PromptEnhanceService(settings), history)

    draft = default_draft(source).model_copy(update={
        "prompt_raw": args.prompt,
        "aspect_ratio": args.aspect_ratio,
        "resolution": ResolutionTier(args.resolution),
        "model": args.model,
        "seed": args.seed,
    })
    if args.image:
        draft = draft.model_copy(update={
            "source_image": load_image(args.image),
            "references": [load_image(path) for path in args.reference or []],
        })

    try:
        if args.enhance:
            enhanced = await session.enhance(args.prompt)
            if enhanced:
                print(f"优化后的提示词:\n{enhanced}\n")
                draft = draft.model_copy(update={"prompt_enhanced": enhanced})

        response = await session.generate(draft)
    finally:
        session.close()

    if response is None:
        print("生成已取消")
        return 1

    for index, image in enumerate(response.data, start=1):
        url = image.url if len(image.url) <= 120 else f"{image.url[:120]}..."
        print(f"[{index}] {image.size} {url}")
    return 0


def run_history(args, history: HistoryStore) -> int:
    if args.action == "list":
        for item in history.items:
            params = item.params
            print(f"{item.id}  {item.source.value}  {params.width}x{params.height}  {item.prompt_raw[:60]}")
        print(f"\n共 {len(history.items)} 条")
    elif args.action == "clear":
        history.clear()
        print("历史记录已清空")
    elif args.action == "remove":
        history.remove_item(args.id)
        print(f"已删除: {args.id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seedream 图片生成命令行工具")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="生成图片")
    generate.add_argument("prompt", help="提示词")
    generate.add_argument("--model", default=None, help="模型ID，默认使用 ARK_MODEL")
    generate.add_argument("--aspect-ratio", default=AspectRatio.SQUARE.value,
                          choices=[ratio.value for ratio in AspectRatio])
    generate.add_argument("--resolution", default=ResolutionTier.P720.value,
                          choices=[tier.value for tier in ResolutionTier])
    generate.add_argument("--seed", type=int, default=None)
    generate.add_argument("--image", help="源图片路径，指定后进入图生图模式")
    generate.add_argument("--reference", action="append", help="参考图片路径，可重复")
    generate.add_argument("--enhance", action="store_true", help="生成前优化提示词")

    history = subparsers.add_parser("history", help="管理本地历史")
    history.add_argument("action", choices=["list", "clear", "remove"])
    history.add_argument("id", nargs="?", help="remove 时指定记录ID")

    theme = subparsers.add_parser("theme", help="查看或切换主题")
    theme.add_argument("action", nargs="?", choices=["show", "toggle"], default="show")

    return parser


async def main(argv=None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)
    storage = FileStorage(settings.history_file_path, settings.history_quota_bytes)

    if args.command == "theme":
        preferences = PreferenceService(storage)
        theme = preferences.toggle_theme() if args.action == "toggle" else preferences.get_theme()
        print(f"当前主题: {theme}")
        return 0

    history = HistoryStore(storage)
    if args.command == "history":
        if args.action == "remove" and not args.id:
            print("❌ remove 需要指定记录ID")
            return 2
        return run_history(args, history)

    try:
        return await run_generate(args, history)
    except BusinessException as e:
        logger.error(f"生成失败: {e.message}")
        print(f"\n❌ 生成失败: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
