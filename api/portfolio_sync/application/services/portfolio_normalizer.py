"""
Normalizador de contenido del portfolio.

Transforma los raw records de Airtable (Projects, Journal, Festivals,
Client Book, Settings) al formato plano que consumen las páginas del sitio:
- projects: filmografía filtrada por Display Status y roles permitidos
- posts: entradas del journal publicadas
- config: ajustes del portfolio (una fila de Settings por modo)

Es determinista: los mismos raw records producen exactamente el mismo
contenido. De eso depende que un sync incremental sea indistinguible de
uno full.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from portfolio_sync.infrastructure.external.airtable_sync.sync_config import (
    CLIENTS_TABLE,
    FESTIVALS_TABLE,
    JOURNAL_TABLE,
    PROJECTS_TABLE,
    SETTINGS_TABLE,
)
from portfolio_sync.shared.utils.text_utils import (
    calculate_reading_time,
    get_video_thumbnail,
    make_slug,
    normalize_project_type,
    normalize_title,
    parse_credits_text,
    parse_external_links,
    split_csv,
)


RawRecord = Dict[str, Any]


@dataclass
class PortfolioContent:
    """Contenido listo para publicar en el snapshot."""
    projects: List[Dict[str, Any]] = field(default_factory=list)
    posts: List[Dict[str, Any]] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)


def default_settings(portfolio_mode: str = "directing") -> Dict[str, Any]:
    """Estructura de config cuando la tabla Settings no tiene filas."""
    return {
        "portfolioId": portfolio_mode,
        "siteTitle": "",
        "navTitle": "",
        "seoTitle": "",
        "seoDescription": "",
        "domain": "",
        "logo": "",
        "favicon": "",
        "fontFamily": "",
        "workSectionLabel": "Filmography",
        "hasJournal": True,
        "showRoleFilter": False,
        "showOtherPortfolioLink": False,
        "otherPortfolioUrl": "",
        "otherPortfolioLabel": "",
        "aboutLayout": "standard",
        "themeMode": "dark",
        "tradingNameDisclosure": "",
        "gaMeasurementId": "",
        "showreel": {"enabled": False, "videoUrl": "", "placeholderImage": ""},
        "contact": {
            "email": "",
            "phone": "",
            "repUK": "",
            "repUSA": "",
            "instagram": "",
            "vimeo": "",
            "linkedin": "",
            "imdb": "",
        },
        "about": {"bio": "", "profileImage": ""},
        "allowedRoles": [],
        "defaultOgImage": "",
        "portfolioOwnerName": "",
        "lastModified": "",
    }


def clean_processed_data(data: Any) -> Any:
    """Quita recursivamente las keys que empiezan con '_' (campos internos)."""
    if isinstance(data, dict):
        return {k: clean_processed_data(v) for k, v in data.items() if not str(k).startswith("_")}
    if isinstance(data, list):
        return [clean_processed_data(item) for item in data]
    return data


def resolve_awards(festivals_field: Any, festivals_map: Dict[str, str]) -> List[str]:
    """Awards: lista de IDs de Festivals o texto separado por saltos de línea."""
    if not festivals_field:
        return []
    if isinstance(festivals_field, list):
        return [festivals_map.get(fid, fid) for fid in festivals_field]
    if isinstance(festivals_field, str):
        return [line for line in festivals_field.split("\n") if line.strip()]
    return []


def resolve_production_company(production_company_field: Any, clients_map: Dict[str, str]) -> str:
    """Production Company: ID(s) de Client Book o texto libre."""
    if isinstance(production_company_field, list):
        return ", ".join(clients_map.get(cid, cid) for cid in production_company_field)
    if production_company_field:
        return clients_map.get(production_company_field, production_company_field)
    return ""


def _first_attachment_url(attachments: Any) -> str:
    if isinstance(attachments, list) and attachments:
        return (attachments[0] or {}).get("url", "") or ""
    return ""


def _first_link(value: Any) -> Optional[str]:
    if isinstance(value, list) and value:
        return value[0]
    return None


class PortfolioNormalizer:
    """
    Da forma a los raw records para un modo de portfolio.

    Uso:
        normalizer = PortfolioNormalizer(portfolio_mode="directing")
        content = normalizer.build(raw_records)
    """

    # Display Status que se publican
    FEATURED_STATUSES = {"Featured", "Hero"}
    HIDDEN_STATUS = "Hidden"
    PUBLISHED_STATUS = "Published"
    FALLBACK_DATE = "1900-01-01"

    def __init__(self, portfolio_mode: str = "directing") -> None:
        self.portfolio_mode = portfolio_mode

    @property
    def display_status_field(self) -> str:
        if self.portfolio_mode == "postproduction":
            return "Display Status (Post)"
        return "Display Status"

    def build(self, raw_records: Dict[str, List[RawRecord]]) -> PortfolioContent:
        """
        Construye projects, posts y config a partir del cache de raw records.
        """
        festivals_map, clients_map = self.build_lookup_maps(raw_records)
        config = self.process_config_records(raw_records.get(SETTINGS_TABLE) or [])
        projects = self.process_project_records(
            raw_records.get(PROJECTS_TABLE) or [],
            festivals_map=festivals_map,
            clients_map=clients_map,
            config=config,
        )
        if config.get("hasJournal"):
            posts = self.process_journal_records(raw_records.get(JOURNAL_TABLE) or [])
        else:
            logger.debug("Journal omitido (hasJournal=false)")
            posts = []

        logger.info(
            f"Contenido '{self.portfolio_mode}': {len(projects)} proyectos, {len(posts)} posts"
        )
        return PortfolioContent(
            projects=clean_processed_data(projects),
            posts=clean_processed_data(posts),
            config=config,
        )

    @staticmethod
    def build_lookup_maps(raw_records: Dict[str, List[RawRecord]]) -> tuple[Dict[str, str], Dict[str, str]]:
        """Mapas ID -> nombre para Festivals y Client Book."""
        festivals_map: Dict[str, str] = {}
        for r in raw_records.get(FESTIVALS_TABLE) or []:
            f = r.get("fields") or {}
            festivals_map[r["id"]] = f.get("Display Name") or f.get("Name") or f.get("Award") or "Unknown Award"

        clients_map: Dict[str, str] = {}
        for r in raw_records.get(CLIENTS_TABLE) or []:
            f = r.get("fields") or {}
            clients_map[r["id"]] = f.get("Company") or f.get("Company Name") or f.get("Client") or "Unknown"

        return festivals_map, clients_map

    def process_project_records(
        self,
        raw_records: List[RawRecord],
        *,
        festivals_map: Dict[str, str],
        clients_map: Dict[str, str],
        config: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Projects visibles para este portfolio, del más nuevo al más viejo."""
        owner_name = config.get("portfolioOwnerName") or ""
        allowed_roles: List[str] = config.get("allowedRoles") or []
        projects: List[Dict[str, Any]] = []

        for r in raw_records:
            f = r.get("fields") or {}

            display_status = f.get(self.display_status_field) or ""
            if not display_status or display_status == self.HIDDEN_STATUS:
                continue

            role_field = f.get("Role")
            project_roles = role_field if isinstance(role_field, list) else ([role_field] if role_field else [])
            if allowed_roles:
                matching_roles = [role for role in project_roles if role in allowed_roles]
                if not matching_roles:
                    continue
            else:
                matching_roles = []

            title = normalize_title(f.get("Name") or "Untitled")
            release_date = f.get("Release Date") or ""
            work_date = f.get("Work Date") or release_date
            year = (release_date or work_date).split("-")[0]

            kind = f.get("Kind")
            if kind:
                kinds = kind if isinstance(kind, list) else [kind]
            else:
                kinds = f.get("Kinds") or []

            # Créditos del dueño del portfolio primero, luego los del campo Credits
            owner_credits = (
                [{"role": role, "name": owner_name} for role in matching_roles] if owner_name else []
            )
            extra_credits = parse_credits_text(f.get("Credits (new)") or f.get("Credits") or "")

            links, external_videos = parse_external_links(f.get("External Links") or "")
            video_url = f.get("Video URL") or ""
            primary_videos = [v.strip() for v in video_url.split(",") if v.strip()]
            all_videos = primary_videos + [v for v in external_videos if v not in primary_videos]
            final_video_url = ", ".join(all_videos)

            gallery_attachments = f.get("Gallery") or f.get("Gallery (Image)") or []
            gallery = [att.get("url") for att in gallery_attachments if att.get("url")]

            hero_image = gallery[0] if gallery else ""
            if not hero_image and all_videos:
                hero_image = get_video_thumbnail(all_videos[0])

            projects.append({
                "id": r["id"],
                "slug": make_slug(title),
                "title": title,
                "type": normalize_project_type(f.get("Project Type") or ""),
                "kinds": kinds,
                "genre": f.get("Genre") or [],
                "productionCompany": resolve_production_company(
                    _first_link(f.get("Production Company")), clients_map
                ),
                "client": f.get("Client") or "",
                "year": year,
                "releaseDate": release_date,
                "workDate": work_date,
                "description": f.get("About") or f.get("Description") or "",
                "isFeatured": display_status in self.FEATURED_STATUSES,
                "isHero": display_status == "Hero",
                "heroImage": hero_image,
                "gallery": gallery,
                "videoUrl": final_video_url,
                "additionalVideos": [],
                "awards": resolve_awards(f.get("Festivals") or f.get("Awards"), festivals_map),
                "credits": owner_credits + extra_credits,
                "externalLinks": links,
                "relatedArticleId": _first_link(f.get("Related Article")),
            })

        projects.sort(
            key=lambda p: p["releaseDate"] or p["workDate"] or self.FALLBACK_DATE,
            reverse=True,
        )
        return projects

    def process_journal_records(self, raw_records: List[RawRecord]) -> List[Dict[str, Any]]:
        """Posts publicados del journal, del más nuevo al más viejo."""
        posts: List[Dict[str, Any]] = []

        for r in raw_records:
            f = r.get("fields") or {}
            status = f.get("Status") or ""
            if status != self.PUBLISHED_STATUS:
                continue

            title = normalize_title(f.get("Title") or "Untitled")
            content = f.get("Content") or ""

            posts.append({
                "id": r["id"],
                "slug": make_slug(title),
                "title": title,
                "date": f.get("Publish Date") or f.get("Date") or "",
                "status": status,
                "content": content,
                "excerpt": f.get("Excerpt") or "",
                "readingTime": calculate_reading_time(content),
                "imageUrl": _first_attachment_url(f.get("Cover Image")),
                "tags": f.get("Tags") or [],
                "relatedProjectId": _first_link(f.get("Related Project")),
                "relatedLinks": split_csv(f.get("Links") or f.get("External Links") or ""),
                "source": "local",
            })

        posts.sort(key=lambda p: p["date"] or self.FALLBACK_DATE, reverse=True)
        return posts

    def process_config_records(self, raw_records: List[RawRecord]) -> Dict[str, Any]:
        """
        Config del portfolio a partir de Settings.

        Usa la fila cuyo 'Portfolio ID' coincide con el modo; si no hay,
        la primera fila; si la tabla está vacía, los defaults.
        """
        if not raw_records:
            return default_settings(self.portfolio_mode)

        settings_record = next(
            (
                r for r in raw_records
                if str((r.get("fields") or {}).get("Portfolio ID") or "").lower() == self.portfolio_mode.lower()
            ),
            None,
        )
        if settings_record is None:
            logger.warning(
                f"No hay Settings para el portfolio '{self.portfolio_mode}', se usa la primera fila"
            )
            settings_record = raw_records[0]

        f = settings_record.get("fields") or {}

        allowed_roles_raw = f.get("Allowed Roles") or ""
        if isinstance(allowed_roles_raw, list):
            allowed_roles = allowed_roles_raw
        else:
            allowed_roles = split_csv(allowed_roles_raw)

        site_title = f.get("Site Title") or ""

        return {
            "portfolioId": f.get("Portfolio ID") or self.portfolio_mode,
            "siteTitle": site_title,
            "navTitle": f.get("Nav Title") or "",
            "seoTitle": f.get("SEO Title") or "",
            "seoDescription": f.get("SEO Description") or "",
            "domain": f.get("Domain") or "",
            "logo": _first_attachment_url(f.get("Logo")),
            "favicon": _first_attachment_url(f.get("Favicon")),
            "fontFamily": f.get("Font Family") or "",
            "workSectionLabel": f.get("Work Section Label") or "Filmography",
            "hasJournal": bool(f.get("Has Journal") or False),
            "showRoleFilter": bool(f.get("Show Role Filter") or False),
            "showOtherPortfolioLink": bool(f.get("Show Other Portfolio Link") or False),
            "otherPortfolioUrl": f.get("Other Portfolio URL") or "",
            "otherPortfolioLabel": f.get("Other Portfolio Label") or "",
            "aboutLayout": f.get("About Layout") or "standard",
            "themeMode": f.get("Theme Mode") or "dark",
            "tradingNameDisclosure": f.get("Trading Name Disclosure") or "",
            "gaMeasurementId": f.get("GA Measurement ID") or "",
            "showreel": {
                "enabled": bool(f.get("Showreel Enabled") or False),
                "videoUrl": f.get("Showreel URL") or "",
                "placeholderImage": _first_attachment_url(f.get("Showreel Placeholder")),
            },
            "contact": {
                "email": f.get("Contact Email") or "",
                "phone": f.get("Contact Phone") or "",
                "repUK": f.get("Rep UK") or "",
                "repUSA": f.get("Rep USA") or "",
                "instagram": f.get("Instagram URL") or "",
                "vimeo": f.get("Vimeo URL") or "",
                "linkedin": f.get("LinkedIn URL") or f.get("Linkedin URL") or "",
                "imdb": f.get("IMDb URL") or f.get("IMDB URL") or "",
            },
            "about": {
                "bio": f.get("Bio") or "",
                "profileImage": _first_attachment_url(f.get("About Image")),
            },
            "allowedRoles": allowed_roles,
            "defaultOgImage": _first_attachment_url(f.get("Default OG Image")),
            "portfolioOwnerName": f.get("Owner Name") or f.get("Portfolio Owner") or site_title,
            "lastModified": f.get("Last Modified") or "",
        }
