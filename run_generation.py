import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from app.config import settings
from app.exceptions import translate_error_to_korean
from app.models import GenerationMode, GenerationRequest, Persona, ProductImage
from app.services.blog_generator import BlogGenerator

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a blog article and product photos")
    parser.add_argument("images", nargs="+", help="Product photo files")
    parser.add_argument("--product-name", required=True)
    parser.add_argument("--main-keyword", default="")
    parser.add_argument("--sub-keywords", default="", help="Comma-separated")
    parser.add_argument("--product-link", default="")
    parser.add_argument("--reference-link", default="")
    parser.add_argument("--target-audience", default="")
    parser.add_argument("--pain-point", default="")
    parser.add_argument("--solution-benefit", default="")
    parser.add_argument("--writing-tone", default="친근한 정보 전달형")
    parser.add_argument("--call-to-action", default="")
    parser.add_argument("--content-flow", default="")
    parser.add_argument("--location", default=None, help="Background theme")
    parser.add_argument("--color", default=None)
    parser.add_argument("--material", default=None)
    parser.add_argument("--dish", default=None)
    parser.add_argument("--image-count", type=int, default=6)
    parser.add_argument("--dish-count", type=int, default=3)
    parser.add_argument("--image-only", action="store_true")
    parser.add_argument("--output", default="output", help="Output directory")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> GenerationRequest:
    staging = {
        "background_location": args.location,
        "background_color": args.color,
        "background_material": args.material,
        "background_dish": args.dish,
    }
    return GenerationRequest(
        product_name=args.product_name,
        main_keyword=args.main_keyword,
        sub_keywords=args.sub_keywords,
        product_link=args.product_link,
        reference_link=args.reference_link,
        persona=Persona(
            target_audience=args.target_audience,
            pain_point=args.pain_point,
            solution_benefit=args.solution_benefit,
            writing_tone=args.writing_tone,
            call_to_action=args.call_to_action,
            content_flow=args.content_flow,
        ),
        target_image_count=args.image_count,
        dish_image_count=args.dish_count,
        product_images=tuple(ProductImage.from_path(path) for path in args.images),
        generation_mode=GenerationMode.IMAGE_ONLY if args.image_only else GenerationMode.FULL,
        **{key: value for key, value in staging.items() if value},
    )


def write_output(result, output_dir: Path):
    output_dir.mkdir(parents=True, exist_ok=True)

    payload = result.model_dump(by_alias=True, mode="json")
    (output_dir / "result.json").write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    for image in result.images:
        data = image.image_bytes()
        if data:
            (output_dir / image.filename).write_bytes(data)

    logger.info(f"Result written to {output_dir} ({len(result.images)} images)")


async def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        request = build_request(args)
        result = await BlogGenerator().generate(request)
    except Exception as e:
        logger.error(f"Generation failed: {type(e).__name__}: {e}", exc_info=True)
        print(translate_error_to_korean(e), file=sys.stderr)
        return 1

    write_output(result, Path(args.output))
    print(f"✅ {result.title} ({result.report.produced_image_count} images, model {result.model_label})")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
