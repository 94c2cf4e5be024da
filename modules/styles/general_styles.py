"""
Единые стили ObraMap с масштабированием
"""
from modules.styles.scaling import scale_size
from config.settings import config

# Настройки UI из конфигурации
UI_CONFIG = config.ui

BASE_FONT_SIZE = UI_CONFIG.font_size if UI_CONFIG.font_size > 0 else 14

FONT_FAMILY = UI_CONFIG.font_family or 'Arial'

FONT_SIZES = {
    'h1': f"{scale_size(int(BASE_FONT_SIZE * 1.43))}px",
    'h2': f"{scale_size(int(BASE_FONT_SIZE * 1.29))}px",
    'normal': f"{scale_size(BASE_FONT_SIZE)}px",
    'small': f"{scale_size(int(BASE_FONT_SIZE * 0.86))}px",
    'xlarge': f"{scale_size(int(BASE_FONT_SIZE * 1.21))}px",
    'figure': f"{scale_size(int(BASE_FONT_SIZE * 2))}px",
}

SIZES = {
    'padding_small': scale_size(4),
    'padding_normal': scale_size(6),
    'border_radius_small': scale_size(4),
    'border_radius_normal': scale_size(6),
    'border_radius_large': scale_size(8),
    'button_height': scale_size(28),
    'sidebar_width': scale_size(180),
    'topbar_height': scale_size(48),
}

COLORS = {
    'primary': '#2563EB',
    'primary_dark': '#1D4ED8',
    'secondary': '#F9FAFB',
    'white': '#FFFFFF',
    'text_dark': '#374151',
    'text_light': '#6B7280',
    'border': '#D1D5DB',
    'success': '#16A34A',
    'warning': '#F59E0B',
    'error': '#EF4444',
}

BUTTON_STYLES = {
    'primary': f"""
        QPushButton {{
            background: {COLORS['primary']};
            color: white;
            border: none;
            border-radius: {SIZES['border_radius_normal']}px;
            padding: 4px 10px;
            font-weight: bold;
            font-family: "{FONT_FAMILY}";
            font-size: {FONT_SIZES['normal']};
            min-height: {SIZES['button_height']}px;
        }}
        QPushButton:hover {{
            background: {COLORS['primary_dark']};
        }}
        QPushButton:disabled {{
            background: #9CA3AF;
            color: #F3F4F6;
        }}
    """,

    'secondary': f"""
        QPushButton {{
            background: {COLORS['white']};
            color: {COLORS['primary']};
            border: 1px solid {COLORS['primary']};
            border-radius: {SIZES['border_radius_normal']}px;
            padding: 3px 8px;
            font-family: "{FONT_FAMILY}";
            font-size: {FONT_SIZES['normal']};
            min-height: {SIZES['button_height']}px;
        }}
        QPushButton:checked, QPushButton:hover {{
            background: {COLORS['primary']};
            color: white;
        }}
    """,

    'danger': f"""
        QPushButton {{
            background: {COLORS['error']};
            color: white;
            border: none;
            border-radius: {SIZES['border_radius_normal']}px;
            padding: 4px 10px;
            font-family: "{FONT_FAMILY}";
            font-size: {FONT_SIZES['normal']};
            min-height: {SIZES['button_height']}px;
        }}
    """,

    'link': f"""
        QPushButton {{
            background: transparent;
            color: {COLORS['primary']};
            border: none;
            font-family: "{FONT_FAMILY}";
            font-size: {FONT_SIZES['small']};
            text-decoration: underline;
        }}
    """,
}

LABEL_STYLES = {
    'h1': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['h1']}; font-weight: bold; color: {COLORS['primary']};",
    'h2': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['h2']}; font-weight: bold; color: {COLORS['text_dark']};",
    'normal': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['normal']}; color: {COLORS['text_dark']};",
    'small': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['small']}; color: {COLORS['text_light']};",
    'figure': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['figure']}; font-weight: bold; color: {COLORS['text_dark']};",
    'error': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['small']}; color: {COLORS['error']};",
    'success': f"font-family: \"{FONT_FAMILY}\"; font-size: {FONT_SIZES['small']}; color: {COLORS['success']};",
}

FRAME_STYLES = {
    'card': f"""
        QFrame {{
            background: {COLORS['white']};
            border-radius: {SIZES['border_radius_large']}px;
            border: 1px solid {COLORS['border']};
        }}
    """,

    'sidebar': f"""
        QFrame {{
            background: {COLORS['white']};
            border-right: 1px solid {COLORS['border']};
        }}
    """,

    'topbar': f"""
        QFrame {{
            background: {COLORS['primary']};
            min-height: {SIZES['topbar_height']}px;
        }}
        QLabel {{
            color: {COLORS['white']};
            font-family: "{FONT_FAMILY}";
            font-size: {FONT_SIZES['xlarge']};
            font-weight: bold;
        }}
    """,
}

SIDEBAR_BUTTON_STYLE = f"""
    QPushButton {{
        color: {COLORS['text_dark']};
        background: none;
        font-family: "{FONT_FAMILY}";
        font-size: {FONT_SIZES['xlarge']};
        border: none;
        padding: {scale_size(12)}px {scale_size(12)}px;
        text-align: left;
        border-radius: {SIZES['border_radius_large']}px;
    }}
    QPushButton:checked, QPushButton:hover {{
        background: #DBEAFE;
        color: {COLORS['primary']};
        font-weight: bold;
    }}
"""

PROGRESS_BAR_STYLE = f"""
    QProgressBar {{
        border: none;
        border-radius: {SIZES['border_radius_small']}px;
        background: #E5E7EB;
        max-height: {scale_size(10)}px;
    }}
    QProgressBar::chunk {{
        border-radius: {SIZES['border_radius_small']}px;
        background: {COLORS['primary']};
    }}
"""


def apply_button_style(widget, style_type='primary'):
    widget.setStyleSheet(BUTTON_STYLES.get(style_type, BUTTON_STYLES['primary']))


def apply_label_style(widget, style_type='normal'):
    widget.setStyleSheet(LABEL_STYLES.get(style_type, LABEL_STYLES['normal']))


def apply_frame_style(widget, style_type='card'):
    widget.setStyleSheet(FRAME_STYLES.get(style_type, FRAME_STYLES['card']))


def apply_sidebar_button_style(widget):
    widget.setStyleSheet(SIDEBAR_BUTTON_STYLE)


def apply_progress_style(widget):
    widget.setStyleSheet(PROGRESS_BAR_STYLE)
