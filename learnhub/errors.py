"""核心组件的异常定义。"""

from __future__ import annotations


class InvariantViolation(ValueError):
    """调用方违反输入契约（编程错误），不应被捕获后继续执行。"""


class PermissionTableError(InvariantViolation):
    """权限表配置非法：重复规则、未知动作或作用域等。"""
