"""Application icon helpers."""
from __future__ import annotations

from .config import StyleConfig


def create_icon(size: int = 64, style: StyleConfig | None = None):  # pragma: no cover - requires PyQt at runtime
    """Draw the GhostFill ghost as a :class:`~PyQt5.QtGui.QIcon`.

    A domed body with a scalloped hem and two eyes, filled with the accent
    gradient. PyQt5 is imported lazily so tests never need a graphical backend.
    """

    try:
        from PyQt5.QtCore import QPointF, QRectF, Qt
        from PyQt5.QtGui import QColor, QIcon, QLinearGradient, QPainter, QPainterPath, QPixmap
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("PyQt5 is required to generate the application icon") from exc

    style = style or StyleConfig()
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.transparent)

    margin = size * 0.12
    left, right = margin, size - margin
    top, hem = margin, size - margin
    width = right - left

    body = QPainterPath()
    body.moveTo(left, hem)
    body.lineTo(left, top + width / 2)
    body.arcTo(QRectF(left, top, width, width), 180, -180)
    body.lineTo(right, hem)
    scallops = 3
    step = width / scallops
    for index in range(scallops):
        x = right - index * step
        body.quadTo(QPointF(x - step / 2, hem - step * 0.6), QPointF(x - step, hem))
    body.closeSubpath()

    gradient = QLinearGradient(0, 0, size, size)
    gradient.setColorAt(0.0, QColor(style.accent_primary))
    gradient.setColorAt(1.0, QColor(style.accent_secondary))

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing)
    painter.setPen(Qt.NoPen)
    painter.setBrush(gradient)
    painter.drawPath(body)

    eye = size * 0.09
    eye_y = top + width * 0.42
    painter.setBrush(QColor(style.bg_secondary))
    painter.drawEllipse(QPointF(left + width * 0.33, eye_y), eye, eye * 1.3)
    painter.drawEllipse(QPointF(left + width * 0.67, eye_y), eye, eye * 1.3)
    painter.end()

    return QIcon(pixmap)


__all__ = ["create_icon"]
