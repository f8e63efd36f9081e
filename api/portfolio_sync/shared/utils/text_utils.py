"""
Utilidades de texto para dar forma al contenido del portfolio.

Todas son funciones puras (sin I/O), usadas por el normalizador de contenido.
"""
from __future__ import annotations

import math
import re
import unicodedata
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse


READING_SPEED_WPM = 225
SLUG_MAX_LENGTH = 80

_YOUTUBE_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts|live)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)
_VIMEO_RE = re.compile(
    r"(?:vimeo\.com/|player\.vimeo\.com/video/)"
    r"(?:(?:channels/[a-zA-Z0-9]+/)|(?:groups/[a-zA-Z0-9]+/videos/)|(?:manage/videos/))?"
    r"([0-9]+)(?:/([a-zA-Z0-9]+))?"
)
_VIMEO_HASH_RE = re.compile(r"[?&]h=([a-zA-Z0-9]+)")
_LIST_SPLIT_RE = re.compile(r"[,|\n]+")

# Etiquetas conocidas para links externos (hostname "core" -> label)
_LINK_LABELS: Dict[str, str] = {
    "imdb": "IMDb",
    "youtube": "YouTube",
    "linkedin": "LinkedIn",
    "instagram": "Instagram",
    "vimeo": "Vimeo",
    "facebook": "Facebook",
}


def normalize_title(title: Optional[str]) -> str:
    """
    Normaliza un título: '_' y '-' pasan a espacio, se colapsan espacios
    y cada palabra queda en Title Case.
    """
    if not title:
        return "Untitled"
    clean = re.sub(r"[_-]", " ", title)
    clean = re.sub(r"\s+", " ", clean).strip()
    return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), clean)


def slugify(text: Optional[str]) -> str:
    """Slug URL-safe: sin diacríticos, minúsculas, separado por guiones."""
    if not text:
        return "untitled"
    normalized = unicodedata.normalize("NFKD", str(text))
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch)).lower()
    slug = re.sub(r"[^a-z0-9]+", "-", normalized).strip("-")
    slug = re.sub(r"-{2,}", "-", slug)
    return slug or "untitled"


def make_slug(base: Optional[str]) -> str:
    """Slug limitado a SLUG_MAX_LENGTH caracteres."""
    return slugify(base)[:SLUG_MAX_LENGTH] or "item"


def calculate_reading_time(content: Optional[str]) -> str:
    """Tiempo de lectura estimado ('N min read') a READING_SPEED_WPM palabras por minuto."""
    if not content:
        return "1 min read"
    text = re.sub(r"<[^>]*>", "", content)
    word_count = max(1, len(text.split()))
    minutes = math.ceil(word_count / READING_SPEED_WPM)
    return f"{minutes} min read"


def parse_credits_text(text: Optional[str]) -> List[Dict[str, str]]:
    """
    Parsea créditos en formato 'Rol: Nombre' separados por coma, '|' o salto de línea.

    Los items sin ':' quedan con rol genérico 'Credit'.
    """
    if not text:
        return []
    credits = []
    for item in _split_list(text):
        role, sep, name = item.partition(":")
        if sep:
            credits.append({"role": role.strip(), "name": name.strip()})
        else:
            credits.append({"role": "Credit", "name": item})
    return credits


def get_video_id(url: Optional[str]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Identifica un video de YouTube o Vimeo.

    Returns:
        (tipo, id, hash): tipo es 'youtube', 'vimeo' o None
    """
    if not url:
        return None, None, None
    clean_url = url.strip()

    yt_match = _YOUTUBE_RE.search(clean_url)
    if yt_match:
        return "youtube", yt_match.group(1), None

    vimeo_match = _VIMEO_RE.search(clean_url)
    if vimeo_match:
        video_hash = vimeo_match.group(2)
        if not video_hash and "?" in clean_url:
            query_hash = _VIMEO_HASH_RE.search(clean_url)
            if query_hash:
                video_hash = query_hash.group(1)
        return "vimeo", vimeo_match.group(1), video_hash

    return None, None, None


def get_video_thumbnail(url: Optional[str]) -> str:
    """
    URL de thumbnail derivada del video, sin llamadas de red.

    YouTube expone un path estable; para Vimeo se usa vumbnail.com.
    """
    video_type, video_id, _ = get_video_id(url)
    if video_type == "youtube":
        return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
    if video_type == "vimeo":
        return f"https://vumbnail.com/{video_id}.jpg"
    return ""


def parse_external_links(raw_text: Optional[str]) -> Tuple[List[Dict[str, str]], List[str]]:
    """
    Separa un campo de links en (links etiquetados, urls de video).
    """
    links: List[Dict[str, str]] = []
    videos: List[str] = []
    if not raw_text:
        return links, videos

    for item in _split_list(raw_text):
        if not item.startswith("http"):
            continue
        video_type, _, _ = get_video_id(item)
        if video_type is not None:
            videos.append(item)
            continue
        links.append({"label": _link_label(item), "url": item})

    return links, videos


def normalize_project_type(raw_type: Optional[str]) -> str:
    """Agrupa el tipo de proyecto de Airtable en categorías estándar."""
    if not raw_type:
        return "Uncategorized"
    tl = raw_type.lower()
    if re.search(r"short|feature|narrative", tl):
        return "Narrative"
    if re.search(r"commercial|tvc|brand", tl):
        return "Commercial"
    if "music" in tl:
        return "Music Video"
    if "documentary" in tl:
        return "Documentary"
    return "Uncategorized"


def split_csv(text: Optional[str]) -> List[str]:
    """Divide un string por comas descartando vacíos."""
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def _split_list(text: str) -> List[str]:
    return [s.strip() for s in _LIST_SPLIT_RE.split(text) if s.strip()]


def _link_label(url: str) -> str:
    hostname = urlparse(url).hostname or ""
    core = hostname.replace("www.", "").split(".")[0]
    if not core:
        return "Link"
    return _LINK_LABELS.get(core, core[:1].upper() + core[1:])
