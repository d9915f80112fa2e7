"""权限表校验命令。"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from learnhub.errors import PermissionTableError
from learnhub.services.permission_table import describe_roles, load_permission_table


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """解析命令参数。"""

    parser = argparse.ArgumentParser(description="校验权限表并输出各角色规则摘要")
    parser.add_argument("path", nargs="?", default="", help="权限表 JSON 文件，默认校验内置权限表")
    parser.add_argument("--json", action="store_true", help="以 JSON 输出摘要")
    return parser.parse_args(argv)


def render_summary(summary: dict[str, list[str]]) -> str:
    lines: list[str] = []
    for role, items in summary.items():
        lines.append(f"[{role}] {len(items)} 条")
        lines.extend(f"  {item}" for item in items)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """校验主流程，失败时返回非零退出码。"""

    args = parse_args(argv)
    path = Path(args.path) if args.path else None
    try:
        table = load_permission_table(path)
    except (OSError, PermissionTableError) as exc:
        print(f"权限表校验失败: {exc}", file=sys.stderr)
        return 1

    summary = describe_roles(table)
    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    else:
        print(render_summary(summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
