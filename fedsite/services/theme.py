"""Built-in microsite themes and theme CSS generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fedsite.errors import ValidationError

if TYPE_CHECKING:
    from fedsite.models import Microsite


DEFAULT_THEME = 'default'

THEMES: dict[str, dict] = {
    'default': {
        'name': 'Default',
        'description': 'Clean and professional default theme',
        'color_scheme': {
            'primaryColor': '#007bff',
            'secondaryColor': '#6c757d',
            'accentColor': '#28a745',
            'backgroundColor': '#ffffff',
            'textColor': '#212529',
            'textSecondary': '#6c757d',
            'borderColor': '#dee2e6',
            'successColor': '#28a745',
            'warningColor': '#ffc107',
            'errorColor': '#dc3545',
        },
        'typography': {
            'fontFamily': '"Segoe UI", Tahoma, Geneva, Verdana, sans-serif',
            'fontSize': '16px',
            'fontWeightNormal': '400',
            'fontWeightBold': '700',
            'lineHeight': '1.5',
            'headingFontFamily': 'inherit',
        },
        'layout': {
            'maxWidth': '1200px',
            'sectionPadding': '60px 0',
            'borderRadius': '8px',
            'boxShadow': '0 4px 6px rgba(0, 0, 0, 0.1)',
        },
    },
    'sports': {
        'name': 'Sports',
        'description': 'Dynamic theme for sports organizations',
        'color_scheme': {
            'primaryColor': '#ff6b35',
            'secondaryColor': '#004e92',
            'accentColor': '#ffd23f',
            'backgroundColor': '#ffffff',
            'textColor': '#2d3748',
            'textSecondary': '#718096',
            'borderColor': '#e2e8f0',
            'successColor': '#38a169',
            'warningColor': '#ed8936',
            'errorColor': '#e53e3e',
        },
        'typography': {
            'fontFamily': '"Roboto", Arial, sans-serif',
            'fontSize': '16px',
            'fontWeightNormal': '400',
            'fontWeightBold': '700',
            'lineHeight': '1.6',
            'headingFontFamily': '"Roboto Condensed", Arial, sans-serif',
        },
        'layout': {},
    },
    'minimal': {
        'name': 'Minimal',
        'description': 'Clean and minimal design',
        'color_scheme': {
            'primaryColor': '#2d3748',
            'secondaryColor': '#718096',
            'accentColor': '#3182ce',
            'backgroundColor': '#ffffff',
            'textColor': '#1a202c',
            'textSecondary': '#4a5568',
            'borderColor': '#e2e8f0',
            'successColor': '#38a169',
            'warningColor': '#d69e2e',
            'errorColor': '#e53e3e',
        },
        'typography': {
            'fontFamily': '"Inter", -apple-system, sans-serif',
            'fontSize': '15px',
            'fontWeightNormal': '400',
            'fontWeightBold': '600',
            'lineHeight': '1.5',
            'headingFontFamily': 'inherit',
        },
        'layout': {},
    },
    'corporate': {
        'name': 'Corporate',
        'description': 'Professional corporate theme',
        'color_scheme': {
            'primaryColor': '#1e3a8a',
            'secondaryColor': '#64748b',
            'accentColor': '#0ea5e9',
            'backgroundColor': '#f8fafc',
            'textColor': '#0f172a',
            'textSecondary': '#475569',
            'borderColor': '#e2e8f0',
            'successColor': '#059669',
            'warningColor': '#d97706',
            'errorColor': '#dc2626',
        },
        'typography': {
            'fontFamily': '"Source Sans Pro", Arial, sans-serif',
            'fontSize': '16px',
            'fontWeightNormal': '400',
            'fontWeightBold': '700',
            'lineHeight': '1.5',
            'headingFontFamily': '"Merriweather", serif',
        },
        'layout': {},
    },
}

# CSS variable name -> (section, key)
_CSS_VARIABLES = [
    ('--primary-color', 'color_scheme', 'primaryColor'),
    ('--secondary-color', 'color_scheme', 'secondaryColor'),
    ('--accent-color', 'color_scheme', 'accentColor'),
    ('--background-color', 'color_scheme', 'backgroundColor'),
    ('--text-color', 'color_scheme', 'textColor'),
    ('--text-secondary', 'color_scheme', 'textSecondary'),
    ('--border-color', 'color_scheme', 'borderColor'),
    ('--success-color', 'color_scheme', 'successColor'),
    ('--warning-color', 'color_scheme', 'warningColor'),
    ('--error-color', 'color_scheme', 'errorColor'),
    ('--font-family', 'typography', 'fontFamily'),
    ('--font-size-base', 'typography', 'fontSize'),
    ('--font-weight-normal', 'typography', 'fontWeightNormal'),
    ('--font-weight-bold', 'typography', 'fontWeightBold'),
    ('--line-height', 'typography', 'lineHeight'),
    ('--heading-font-family', 'typography', 'headingFontFamily'),
    ('--container-max-width', 'layout', 'maxWidth'),
    ('--section-padding', 'layout', 'sectionPadding'),
    ('--border-radius', 'layout', 'borderRadius'),
    ('--shadow', 'layout', 'boxShadow'),
]

_BASE_CSS = """
body {
  font-family: var(--font-family);
  font-size: var(--font-size-base);
  line-height: var(--line-height);
  color: var(--text-color);
  background-color: var(--background-color);
  margin: 0;
}

.container {
  max-width: var(--container-max-width);
  margin: 0 auto;
  padding: 0 15px;
}

h1, h2, h3, h4, h5, h6 {
  font-family: var(--heading-font-family);
  font-weight: var(--font-weight-bold);
}

.navbar {
  border-bottom: 1px solid var(--border-color);
  padding: 15px 0;
}

.nav-link {
  color: var(--text-color);
  text-decoration: none;
  padding: 8px 15px;
}

.nav-link.active, .nav-link:hover {
  color: var(--primary-color);
}

.section {
  padding: var(--section-padding);
}

.btn-primary {
  background-color: var(--primary-color);
  border-radius: var(--border-radius);
  color: #ffffff;
  padding: 10px 20px;
  text-decoration: none;
}

.footer {
  background: var(--text-color);
  color: #ffffff;
  padding: 40px 0;
  margin-top: 60px;
}
""".strip()


def get_theme(key: str | None) -> dict:
    """Return the built-in theme for ``key``; unknown keys fall back to the default."""
    return THEMES.get(key or DEFAULT_THEME, THEMES[DEFAULT_THEME])


def validate_theme_key(key: str | None) -> str:
    key = (key or DEFAULT_THEME).strip().lower()
    if key not in THEMES:
        raise ValidationError(f"Unknown theme '{key}'. Allowed: {', '.join(sorted(THEMES))}")
    return key


def list_themes() -> list[dict]:
    return [
        {
            'key': key,
            'name': theme['name'],
            'description': theme['description'],
            'colorScheme': dict(theme['color_scheme']),
        }
        for key, theme in THEMES.items()
    ]


def resolve_theme_values(microsite: Microsite) -> dict[str, dict]:
    """Merge the default theme, the microsite's theme and its colour overrides."""
    base = THEMES[DEFAULT_THEME]
    theme = get_theme(microsite.theme_key)
    return {
        'color_scheme': {
            **base['color_scheme'],
            **theme['color_scheme'],
            **(microsite.color_scheme or {}),
        },
        'typography': {**base['typography'], **theme['typography']},
        'layout': {**base['layout'], **theme['layout']},
    }


def generate_theme_css(microsite: Microsite) -> str:
    """
    Generate the stylesheet for a microsite.

    Args:
        microsite: Microsite whose theme, colour scheme and custom CSS apply

    Returns:
        CSS string with ``:root`` variables, base rules and any custom CSS
    """
    values = resolve_theme_values(microsite)
    theme = get_theme(microsite.theme_key)

    css_parts = [f"/* Theme: {theme['name']} */", ":root {"]
    for variable, section, key in _CSS_VARIABLES:
        value = values[section].get(key)
        if value:
            css_parts.append(f"  {variable}: {value};")
    css_parts.append("}")
    css_parts.append("")
    css_parts.append(_BASE_CSS)

    if microsite.custom_css:
        css_parts.append("")
        css_parts.append("/* Custom CSS */")
        css_parts.append(microsite.custom_css)

    return "\n".join(css_parts)


__all__ = [
    'THEMES',
    'DEFAULT_THEME',
    'get_theme',
    'validate_theme_key',
    'list_themes',
    'resolve_theme_values',
    'generate_theme_css',
]
