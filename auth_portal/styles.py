"""Централизованные стили для Streamlit приложения."""

from typing import Final

# ===== COLORS =====
PRIMARY_COLOR: Final[str] = "#2563EB"
MUTED_COLOR: Final[str] = "#9CA3AF"
SUCCESS_COLOR: Final[str] = "#16A34A"

# ===== SIDEBAR STYLES =====
SIDEBAR_HIDE_STYLE: Final[str] = """
<style>
    [data-testid="stSidebar"] {
        display: none;
    }
    [data-testid="stSidebarNav"] {
        display: none;
    }
</style>
"""

# ===== STEP PROGRESS =====
STEP_PROGRESS_STYLE: Final[str] = """
<style>
.step-progress {
    display: flex;
    justify-content: space-between;
    margin: 0.5rem 0 1.5rem 0;
}
.step-progress .step {
    flex: 1;
    text-align: center;
    font-size: 0.85rem;
}
.step-progress .step .circle {
    display: inline-block;
    width: 2rem;
    height: 2rem;
    line-height: 2rem;
    border-radius: 50%;
    color: white;
    font-weight: 600;
}
</style>
"""


def get_step_progress_html(current_step: int, titles: dict) -> str:
    """
    HTML индикатора шагов регистрации.

    Args:
        current_step: Текущий шаг (с 1)
        titles: ``{step: (title, subtitle)}``

    Returns:
        HTML строка
    """
    items = []
    for step, (title, subtitle) in sorted(titles.items()):
        if step < current_step:
            color, label = SUCCESS_COLOR, "✓"
        elif step == current_step:
            color, label = PRIMARY_COLOR, str(step)
        else:
            color, label = MUTED_COLOR, str(step)
        items.append(
            f'<div class="step">'
            f'<span class="circle" style="background: {color};">{label}</span>'
            f"<div><b>{title}</b></div>"
            f'<div style="color: {MUTED_COLOR};">{subtitle}</div>'
            f"</div>"
        )
    return f'<div class="step-progress">{"".join(items)}</div>'
