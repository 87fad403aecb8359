"""
MangaThemesia site configurations.

Each entry produces one handler per language. Optional keys:
- langs: languages served from the same base URL (first one keeps the bare name)
- version_code: overrides the theme's base version code
- manga_url_directory: series path prefix when it is not ``/manga``
- url_normalizer: function to normalize URLs (e.g., redirect domains)
"""

MANGATHEMESIA_BASE_VERSION_CODE = 25

MANGATHEMESIA_SITES = [
    {
        "name": "asurascans",
        "display_name": "Asura Scans",
        "base_url": "https://www.asurascans.com",
        "langs": ("en", "tr"),
        "version_code": 23,
    },
    {
        "name": "flamescans",
        "display_name": "Flame Scans",
        "base_url": "https://flamescans.org",
        "langs": ("en",),
        "version_code": 4,
        "manga_url_directory": "/series",
    },
    {
        "name": "anigliscans",
        "display_name": "Animated Glitched Scans",
        "base_url": "https://anigliscans.com",
    },
    {
        "name": "suryascans",
        "display_name": "Surya Scans",
        "base_url": "https://suryascans.com",
    },
]
