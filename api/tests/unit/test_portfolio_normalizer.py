"""
Tests del normalizador de contenido (raw records -> projects/posts/config).
"""
from __future__ import annotations

from conftest import make_record, sample_tables
from portfolio_sync.application.services.portfolio_normalizer import (
    PortfolioNormalizer,
    clean_processed_data,
    default_settings,
    resolve_awards,
    resolve_production_company,
)


def test_build_filters_hidden_and_disallowed_roles() -> None:
    content = PortfolioNormalizer("directing").build(sample_tables())

    assert [p["id"] for p in content.projects] == ["recP4", "recP1"]
    assert [p["id"] for p in content.posts] == ["recJ1"]


def test_project_shape() -> None:
    content = PortfolioNormalizer("directing").build(sample_tables())
    project = next(p for p in content.projects if p["id"] == "recP1")

    assert project["title"] == "Night Swim"
    assert project["slug"] == "night-swim"
    assert project["type"] == "Narrative"
    assert project["year"] == "2023"
    assert project["awards"] == ["Sundance 2024"]
    assert project["productionCompany"] == "Acme Films"
    assert project["heroImage"] == "https://vumbnail.com/123456789.jpg"
    assert project["isFeatured"] is True
    assert project["isHero"] is False
    assert project["credits"] == [
        {"role": "Director", "name": "Jane Doe"},
        {"role": "DOP", "name": "Ana Ruiz"},
        {"role": "Editor", "name": "Tom Lee"},
    ]


def test_hero_image_prefers_gallery() -> None:
    content = PortfolioNormalizer("directing").build(sample_tables())
    hero = content.projects[0]

    assert hero["isHero"] is True
    assert hero["heroImage"] == "https://cdn.example.com/brand.jpg"
    assert hero["type"] == "Commercial"


def test_postproduction_uses_its_own_display_status() -> None:
    tables = sample_tables()
    tables["Settings"] = [make_record("recS2", None, **{"Portfolio ID": "postproduction"})]
    tables["Projects"] = [
        make_record("recA", None, **{"Name": "Color Job", "Display Status (Post)": "Featured", "Display Status": "Hidden"}),
        make_record("recB", None, **{"Name": "Directed", "Display Status": "Featured"}),
    ]

    content = PortfolioNormalizer("postproduction").build(tables)

    assert [p["id"] for p in content.projects] == ["recA"]
    assert content.posts == []


def test_config_falls_back_to_first_row_then_defaults() -> None:
    normalizer = PortfolioNormalizer("postproduction")
    rows = [make_record("recS1", None, **{"Portfolio ID": "directing", "Site Title": "Main"})]

    assert normalizer.process_config_records(rows)["siteTitle"] == "Main"
    assert normalizer.process_config_records([]) == default_settings("postproduction")


def test_config_owner_name_falls_back_to_site_title() -> None:
    rows = [make_record("recS1", None, **{"Portfolio ID": "directing", "Site Title": "Studio X"})]

    config = PortfolioNormalizer("directing").process_config_records(rows)

    assert config["portfolioOwnerName"] == "Studio X"
    assert config["allowedRoles"] == []
    assert config["hasJournal"] is False


def test_journal_only_published_posts() -> None:
    posts = PortfolioNormalizer().process_journal_records([
        make_record("rec1", None, **{"Title": "a_first-post", "Status": "Published", "Date": "2025-01-01",
                                      "Links": "https://a.com, https://b.com",
                                      "Cover Image": [{"url": "https://cdn.example.com/c.jpg"}]}),
        make_record("rec2", None, **{"Title": "Second", "Status": "Scheduled", "Date": "2025-02-01"}),
    ])

    assert len(posts) == 1
    assert posts[0]["title"] == "A First Post"
    assert posts[0]["relatedLinks"] == ["https://a.com", "https://b.com"]
    assert posts[0]["imageUrl"] == "https://cdn.example.com/c.jpg"
    assert posts[0]["source"] == "local"


def test_resolvers() -> None:
    assert resolve_awards(["recF1", "recZ"], {"recF1": "Cannes"}) == ["Cannes", "recZ"]
    assert resolve_awards("Winner\n\nNominee", {}) == ["Winner", "Nominee"]
    assert resolve_production_company("recC1", {"recC1": "Acme"}) == "Acme"
    assert resolve_production_company(None, {}) == ""


def test_clean_processed_data_strips_private_keys() -> None:
    assert clean_processed_data({"a": 1, "_tmp": 2, "nested": [{"_x": 1, "y": 2}]}) == {"a": 1, "nested": [{"y": 2}]}
