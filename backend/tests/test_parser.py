from pathlib import Path

from fiadocs_core.parser import (
    absolute_url,
    document_filename,
    extract_document_fragment,
    parse_document_list,
    parse_grand_prix_events,
)

SAMPLE_PAGE = Path(__file__).parent.parent / "assets" / "grand_prix_events_sample.html"

FRAGMENT = """
<div class="document-type-wrapper">
  <ul>
    <li class="document-row">
      <a href="/sites/default/files/decision-document/2025_doc_1_-_entry_list.pdf">
        <span class="title">  Doc 1 - Entry List  </span>
        <span class="published">Published on <span class="date-display-single">14.03.25 10:00</span></span>
      </a>
    </li>
    <li class="document-row">
      <a href="/sites/default/files/decision-document/2025_doc_2.pdf">
        <span class="title">Doc 2 - Missing date</span>
      </a>
    </li>
    <li class="document-row">
      <span class="title">Doc 3 - No link</span>
    </li>
    <li class="document-row">
      <a href="sites/default/files/decision-document/2025_doc_4_-_classification.pdf">
        <span class="title">Doc 4 -
          Final Classification</span>
        <span class="published"><span class="date-display-single">16.03.25 17:45</span></span>
      </a>
    </li>
  </ul>
</div>
"""


def test_extract_document_fragment_picks_insert_command() -> None:
    payload = [
        {"command": "settings", "data": "document-type-wrapper"},
        {"command": "insert", "data": "<div class='other'></div>"},
        {"command": "insert", "data": {"html": "document-type-wrapper"}},
        {"command": "insert", "data": FRAGMENT},
    ]

    assert extract_document_fragment(payload) == FRAGMENT
    assert extract_document_fragment([{"command": "insert", "data": "<p>nothing</p>"}]) is None
    assert extract_document_fragment({"command": "insert"}) is None


def test_parse_document_list_skips_incomplete_rows() -> None:
    items = parse_document_list([{"command": "insert", "data": FRAGMENT}], 2386)

    assert [item.title for item in items] == ["Doc 1 - Entry List", "Doc 4 - Final Classification"]
    assert items[0].event_id == 2386
    assert items[0].href == "/sites/default/files/decision-document/2025_doc_1_-_entry_list.pdf"
    assert items[0].published == "14.03.25 10:00"
    assert items[1].href.startswith("sites/")


def test_parse_document_list_without_fragment_is_empty() -> None:
    assert parse_document_list([], 1) == []
    assert parse_document_list([{"command": "settings", "data": {}}], 1) == []


def test_absolute_url_variants() -> None:
    base = "https://www.fia.com"
    assert absolute_url(base, "/sites/a.pdf") == "https://www.fia.com/sites/a.pdf"
    assert absolute_url(base + "/", "sites/a.pdf") == "https://www.fia.com/sites/a.pdf"
    assert absolute_url(base, "https://cdn.example.com/a.pdf") == "https://cdn.example.com/a.pdf"


def test_document_filename_is_stable_and_safe() -> None:
    url = "https://www.fia.com/sites/default/files/decision-document/2025%20Australian%20GP%20-%20Doc%201.pdf"

    name = document_filename(url)

    assert name == document_filename(url)
    digest, _, slug = name.partition("-")
    assert len(digest) == 16
    assert slug == "2025_Australian_GP_-_Doc_1.pdf"
    assert "/" not in name

    assert document_filename("https://www.fia.com/documents/download").endswith("-download.pdf")
    assert document_filename("https://www.fia.com/").endswith("-document.pdf")


def test_parse_grand_prix_events_from_sample_page() -> None:
    events = parse_grand_prix_events(SAMPLE_PAGE.read_text(encoding="utf-8"))

    by_id = {event.id: event for event in events}
    assert list(by_id) == [2386, 2387, 2388, 2389, 2391, 2390]
    assert by_id[2386].name == "Australian Grand Prix"
    assert by_id[2386].url.startswith("https://www.fia.com/documents/")
    assert by_id[2391].name == "Miami Grand Prix"
    assert by_id[2391].url == "https://www.fia.com/event/2391"
    assert by_id[2390].name == "Saudi Arabian Grand Prix"


def test_parse_grand_prix_events_script_name_fallback() -> None:
    html = """
    <html><body>
      <script>var race = {"eventId": 77, "round": 1}; var label = "Pre-season Test";</script>
      <script>var race2 = {"event_id": 78};</script>
    </body></html>
    """

    events = parse_grand_prix_events(html, site_root="https://example.org/")

    assert [(event.id, event.name) for event in events] == [(77, "Pre-season Test"), (78, "Event 78")]
    assert events[1].url == "https://example.org/event/78"


def test_parse_grand_prix_events_ignores_unusable_links() -> None:
    html = """
    <a href="/event/">No id</a>
    <a href="/event/0/">Zero</a>
    <a href="/event/12"></a>
    """

    assert parse_grand_prix_events(html) == []


def test_parse_grand_prix_events_resolves_relative_links() -> None:
    html = '<a href="event-2025/12">Test Event</a>'

    events = parse_grand_prix_events(html, site_root="https://www.fia.com")

    assert [(event.id, event.name, event.url) for event in events] == [
        (12, "Test Event", "https://www.fia.com/event-2025/12")
    ]
