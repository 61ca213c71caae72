#!/usr/bin/env python3
"""
purge_outputs.py - 생성 결과/업로드 보관 정책 기반 정리 스크립트

default.yaml의 retention 설정에 따라:
1. output/ 아래 output_ttl_hours 초과 항목 삭제 (요청 디렉터리 단위)
2. uploads/ 아래 upload_ttl_hours 초과 파일 삭제

사용법:
    # 기본 실행 (dry-run)
    uv run python scripts/purge_outputs.py

    # 실제 삭제
    uv run python scripts/purge_outputs.py --execute

    # TTL 직접 지정
    uv run python scripts/purge_outputs.py --output-ttl-hours 6 --execute

    # cron 예시 (매시 정각)
    0 * * * * cd /path/to/project && uv run python scripts/purge_outputs.py --execute >> /var/log/purge_outputs.log 2>&1
"""

import argparse
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 import 경로에 추가 (src 패키지)
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.app.config import load_config  # noqa: E402
from src.core.retention import PurgeResult, RetentionConfig, sweep  # noqa: E402

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="생성 결과/업로드 보관 정책 기반 정리 스크립트",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="실제 삭제 실행 (기본: dry-run)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="설정 YAML 경로 (기본: default.yaml)",
    )
    parser.add_argument(
        "--output-ttl-hours",
        type=float,
        default=None,
        help="output 보관 시간 (설정값 대신 사용)",
    )
    parser.add_argument(
        "--upload-ttl-hours",
        type=float,
        default=None,
        help="uploads 보관 시간 (설정값 대신 사용)",
    )
    return parser


def run(args: argparse.Namespace) -> PurgeResult:
    """인자 → 설정 병합 → sweep 실행."""
    config = load_config(Path(args.config) if args.config else None)
    retention = RetentionConfig.from_config(config)

    if args.output_ttl_hours is not None:
        retention.output_ttl_hours = args.output_ttl_hours
    if args.upload_ttl_hours is not None:
        retention.upload_ttl_hours = args.upload_ttl_hours

    logger.info(
        f"보관 정책: output {retention.output_ttl_hours}h, "
        f"uploads {retention.upload_ttl_hours}h"
    )

    if not args.execute:
        logger.info("=" * 50)
        logger.info("DRY-RUN 모드 (실제 삭제 없음)")
        logger.info("실제 실행: --execute 옵션 추가")
        logger.info("=" * 50)

    return sweep(
        output_root=Path(config["paths"]["output_dir"]),
        upload_root=Path(config["paths"]["upload_dir"]),
        retention=retention,
        execute=args.execute,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    result = run(args)

    # 결과 출력
    logger.info("=" * 50)
    logger.info("Purge 결과:")
    logger.info(
        f"  스캔: {result.scanned_entries} entries ({result.scanned_size_mb:.2f} MB)"
    )
    logger.info(
        f"  정리: {result.purged_entries} entries, {result.purged_files} files "
        f"({result.purged_size_mb:.2f} MB)"
    )
    if result.errors:
        logger.warning(f"  에러: {len(result.errors)}개")
        for err in result.errors[:5]:  # 최대 5개만 출력
            logger.warning(f"    - {err}")

    return 0 if not result.errors else 1


if __name__ == "__main__":
    sys.exit(main())
