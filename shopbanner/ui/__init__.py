"""UI 模块."""
