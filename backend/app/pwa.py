from __future__ import annotations

import datetime as dt
import html
import json
from pathlib import Path
from typing import Any, Dict, List

THEME_COLOR = "#E10600"
BACKGROUND_COLOR = "#15151E"
SERVICE_WORKER_CACHE = "fia-f1-documents-v2"
PDFJS_URL = "https://cdnjs.cloudflare.com/ajax/libs/pdf.js/2.16.105/pdf.min.js"
PDFJS_WORKER_URL = "https://cdnjs.cloudflare.com/ajax/libs/pdf.js/2.16.105/pdf.worker.min.js"

# Asset paths relative to the assets directory; only those present on disk are precached.
PRECACHE_ASSETS = [
    "images/favicon.png",
    "images/fia-formula-logo.png",
    "images/fia-logo.png",
    "images/adaptive-icon.png",
    "fonts/FuturaCyrillicBold.ttf",
    "fonts/FuturaCyrillicBook.ttf",
    "fonts/FuturaCyrillicLight.ttf",
    "fonts/FuturaCyrillicMedium.ttf",
]


def precache_urls(assets_dir: Path) -> List[str]:
    urls = ["/", "/manifest.json"]
    urls.extend(f"/assets/{name}" for name in PRECACHE_ASSETS if (assets_dir / name).is_file())
    urls.extend([PDFJS_URL, PDFJS_WORKER_URL])
    return urls


def _script_json(value: Any) -> str:
    # Keep embedded JSON from closing the surrounding <script> element.
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def manifest() -> Dict[str, Any]:
    icon = "/assets/images/adaptive-icon.png"
    return {
        "name": "FIA F1 Documents",
        "short_name": "F1 Docs",
        "description": "FIA Formula 1 documents viewer",
        "start_url": "/",
        "display": "standalone",
        "background_color": BACKGROUND_COLOR,
        "theme_color": THEME_COLOR,
        "icons": [
            {"src": icon, "sizes": "192x192", "type": "image/png"},
            {"src": icon, "sizes": "512x512", "type": "image/png"},
            {"src": icon, "sizes": "512x512", "type": "image/png", "purpose": "maskable"},
        ],
    }


def service_worker_script(urls: List[str]) -> str:
    return f"""const CACHE_NAME = {json.dumps(SERVICE_WORKER_CACHE)};
const urlsToCache = {json.dumps(urls, indent=2)};

self.addEventListener('install', event => {{
  event.waitUntil(caches.open(CACHE_NAME).then(cache => cache.addAll(urlsToCache)));
}});

self.addEventListener('fetch', event => {{
  event.respondWith(
    caches.match(event.request).then(cached => {{
      if (cached) {{
        return cached;
      }}
      return fetch(event.request).then(response => {{
        if (!response || response.status !== 200 || response.type !== 'basic') {{
          return response;
        }}
        const copy = response.clone();
        if (event.request.url.startsWith(self.location.origin)) {{
          caches.open(CACHE_NAME).then(cache => cache.put(event.request, copy));
        }}
        return response;
      }});
    }})
  );
}});

self.addEventListener('activate', event => {{
  const keep = [CACHE_NAME];
  event.waitUntil(
    caches.keys().then(names => Promise.all(
      names.filter(name => keep.indexOf(name) === -1).map(name => caches.delete(name))
    ))
  );
}});
"""


def render_loading_page() -> str:
    return """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta http-equiv="refresh" content="5;url=/">
  <title>FIA F1 Documents - Loading</title>
  <style>
    body { font-family: 'Futura', sans-serif; text-align: center; margin: 100px auto; }
    .spinner { width: 40px; height: 40px; margin: 20px auto; border: 4px solid rgba(0, 0, 0, 0.1);
               border-left-color: #09f; border-radius: 50%; animation: spin 1s linear infinite; }
    @keyframes spin { to { transform: rotate(360deg); } }
  </style>
</head>
<body>
  <h1>Loading documents...</h1>
  <div class="spinner"></div>
  <p>This may take a moment. Please wait...</p>
</body>
</html>"""


def render_api_page() -> str:
    return """<h1>FIA F1 Files API</h1>
<p>Use <code>/documents</code> to get cached documents.</p>
<p>Use <code>/events</code> to get event mappings.</p>"""


_STYLE = """
  @font-face { font-family: 'Futura'; src: url('/assets/fonts/FuturaCyrillicMedium.ttf') format('truetype'); font-weight: 500; }
  @font-face { font-family: 'Futura'; src: url('/assets/fonts/FuturaCyrillicBold.ttf') format('truetype'); font-weight: 700; }
  @font-face { font-family: 'Futura'; src: url('/assets/fonts/FuturaCyrillicLight.ttf') format('truetype'); font-weight: 300; }
  :root { --f1-red: #E10600; --f1-dark: #15151E; --f1-gray: #949498; }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body { font-family: 'Futura', sans-serif; background-color: var(--f1-dark); color: #fff; }
  .container { max-width: 1200px; margin: 0 auto; padding: 20px; }
  header { display: flex; align-items: center; justify-content: space-between; padding: 15px 20px;
           background-color: #000; border-bottom: 2px solid var(--f1-red); position: sticky; top: 0; z-index: 10; }
  .logo { display: flex; align-items: center; }
  .logo img { height: 40px; margin-right: 10px; }
  h1 { font-size: 24px; font-weight: 700; }
  .filter-container { padding: 15px 20px; background-color: rgba(0,0,0,0.3); margin-bottom: 20px; }
  select, .search-box { padding: 8px 12px; background-color: var(--f1-dark); color: white; border: 1px solid var(--f1-gray);
                        border-radius: 4px; font-family: 'Futura', sans-serif; font-weight: 300; margin-right: 10px; }
  .search-box { width: 250px; }
  .documents { display: grid; grid-template-columns: repeat(auto-fill, minmax(300px, 1fr)); gap: 20px; margin-top: 20px; }
  .document-card { background-color: rgba(255,255,255,0.05); border-radius: 8px; overflow: hidden;
                   border: 1px solid rgba(255,255,255,0.1); transition: transform 0.2s, box-shadow 0.2s; }
  .document-card:hover { transform: translateY(-3px); box-shadow: 0 10px 20px rgba(0,0,0,0.2); border-color: var(--f1-red); }
  .document-header { background-color: rgba(0,0,0,0.5); padding: 10px 15px; border-bottom: 2px solid var(--f1-red); }
  .event-name { font-size: 14px; font-weight: 300; color: var(--f1-gray); display: block; margin-bottom: 5px; }
  .document-title { font-size: 16px; font-weight: 500; display: block; white-space: nowrap; overflow: hidden; text-overflow: ellipsis; }
  .document-body { padding: 15px; }
  .document-date { font-size: 13px; color: var(--f1-gray); margin-bottom: 10px; }
  .document-view, .modal-actions button, #install-button { background-color: var(--f1-red); color: white; border: none;
      padding: 8px 12px; border-radius: 4px; cursor: pointer; font-family: 'Futura', sans-serif; font-weight: 500; }
  .document-view { width: 100%; }
  #install-button { display: none; }
  .modal { display: none; position: fixed; top: 0; left: 0; width: 100%; height: 100%; background-color: rgba(0,0,0,0.9);
           z-index: 100; flex-direction: column; }
  .modal-header { display: flex; justify-content: space-between; align-items: center; padding: 15px 20px;
                  background-color: #000; border-bottom: 2px solid var(--f1-red); }
  .modal-title { font-size: 18px; font-weight: 500; white-space: nowrap; overflow: hidden; text-overflow: ellipsis; max-width: 80%; }
  .modal-close { background: transparent; border: none; color: white; font-size: 24px; cursor: pointer; padding: 5px 10px; }
  .modal-content { flex-grow: 1; display: flex; flex-direction: column; overflow: auto; }
  .modal-loading { display: flex; flex-direction: column; align-items: center; justify-content: center; height: 100%; }
  .spinner { width: 40px; height: 40px; border: 4px solid rgba(255,255,255,0.1); border-left-color: var(--f1-red);
             border-radius: 50%; animation: spin 1s linear infinite; margin-bottom: 15px; }
  @keyframes spin { to { transform: rotate(360deg); } }
  .pdf-container { display: none; flex-direction: column; align-items: center; padding: 10px; }
  #pdf-controls { display: flex; gap: 10px; align-items: center; margin-bottom: 10px; }
  .pdf-control-btn { background: rgba(255,255,255,0.1); color: white; border: 1px solid rgba(255,255,255,0.2);
                     border-radius: 4px; padding: 6px 10px; cursor: pointer; }
  .modal-actions { display: flex; justify-content: center; padding: 15px; background-color: #000;
                   border-top: 1px solid rgba(255,255,255,0.1); }
  .modal-actions button { margin: 0 10px; padding: 10px 20px; }
  .empty-state { display: none; text-align: center; padding: 40px; grid-column: 1 / -1; }
  .empty-state p { color: var(--f1-gray); font-weight: 300; }
  footer { margin-top: 40px; text-align: center; padding: 20px; color: var(--f1-gray); font-size: 12px; font-weight: 300; }
  @media (max-width: 768px) {
    header { flex-direction: column; align-items: flex-start; }
    select, .search-box { width: 100%; margin-bottom: 10px; margin-right: 0; }
    .documents { grid-template-columns: 1fr; }
  }
"""

_SCRIPT = """
  const documentContainer = document.getElementById('document-container');
  const eventFilter = document.getElementById('event-filter');
  const searchInput = document.getElementById('search');
  const emptyState = document.getElementById('empty-state');
  const modal = document.getElementById('document-modal');
  const modalTitle = document.getElementById('modal-title');
  const modalLoading = document.getElementById('modal-loading');
  const pdfViewer = document.getElementById('pdf-viewer');
  const pdfCanvas = document.getElementById('pdf-canvas');
  const ctx = pdfCanvas.getContext('2d');
  const downloadButton = document.getElementById('download-document');
  const installButton = document.getElementById('install-button');
  let pdfDoc = null;
  let currentPage = 1;
  let scale = 1.5;

  function parsePublishedDate(value) {
    // "DD.MM.YY HH:MM"
    const match = /^(\\d{2})\\.(\\d{2})\\.(\\d{2})\\s+(\\d{2}):(\\d{2})$/.exec((value || '').trim());
    if (!match) return null;
    return new Date(2000 + parseInt(match[3], 10), parseInt(match[2], 10) - 1, parseInt(match[1], 10),
                    parseInt(match[4], 10), parseInt(match[5], 10));
  }

  function filterDocuments() {
    const selectedEvent = eventFilter.value;
    const term = searchInput.value.trim().toLowerCase();
    const filtered = documents.filter(doc => {
      if (!doc.title || !doc.href || !doc.eventName) return false;
      if (selectedEvent !== 'all' && String(doc.eventId) !== selectedEvent) return false;
      if (term && !doc.title.toLowerCase().includes(term) && !doc.eventName.toLowerCase().includes(term)) return false;
      return true;
    });
    const dated = filtered.filter(doc => parsePublishedDate(doc.published));
    const undated = filtered.filter(doc => !parsePublishedDate(doc.published));
    dated.sort((a, b) => parsePublishedDate(b.published) - parsePublishedDate(a.published));
    renderCards(dated.concat(undated));
  }

  function renderCards(docs) {
    documentContainer.replaceChildren();
    emptyState.style.display = docs.length ? 'none' : 'block';
    docs.forEach(doc => {
      const card = document.createElement('div');
      card.className = 'document-card';
      const header = document.createElement('div');
      header.className = 'document-header';
      const eventName = document.createElement('span');
      eventName.className = 'event-name';
      eventName.textContent = doc.eventName;
      const title = document.createElement('span');
      title.className = 'document-title';
      title.title = doc.title;
      title.textContent = doc.title;
      header.append(eventName, title);
      const body = document.createElement('div');
      body.className = 'document-body';
      const date = document.createElement('div');
      date.className = 'document-date';
      date.textContent = doc.published || 'Date not available';
      const view = document.createElement('button');
      view.className = 'document-view';
      view.textContent = 'View Document';
      view.addEventListener('click', () => openDocument(doc));
      body.append(date, view);
      card.append(header, body);
      documentContainer.appendChild(card);
    });
  }

  function openDocument(doc) {
    modalTitle.textContent = doc.title;
    modalLoading.style.display = 'flex';
    pdfViewer.style.display = 'none';
    modal.style.display = 'flex';
    document.body.style.overflow = 'hidden';
    pdfDoc = null;
    currentPage = 1;
    downloadButton.onclick = () => window.open(doc.href, '_blank');

    pdfjsLib.getDocument(doc.href).promise
      .then(pdf => {
        pdfDoc = pdf;
        document.getElementById('page-count').textContent = pdf.numPages;
        renderPage(currentPage);
        pdfViewer.style.display = 'flex';
        modalLoading.style.display = 'none';
      })
      .catch(error => {
        console.error('Error loading PDF:', error);
        modalLoading.style.display = 'none';
        alert('Could not load the PDF. You can try the download option instead.');
        window.open(doc.href, '_blank');
      });
  }

  function renderPage(pageNumber) {
    if (!pdfDoc) return;
    pdfDoc.getPage(pageNumber).then(page => {
      const viewport = page.getViewport({ scale: scale });
      pdfCanvas.height = viewport.height;
      pdfCanvas.width = viewport.width;
      page.render({ canvasContext: ctx, viewport: viewport });
      document.getElementById('page-num').textContent = pageNumber;
    });
  }

  function goPreviousPage() { if (pdfDoc && currentPage > 1) { currentPage -= 1; renderPage(currentPage); } }
  function goNextPage() { if (pdfDoc && currentPage < pdfDoc.numPages) { currentPage += 1; renderPage(currentPage); } }
  function zoomIn() { if (scale < 3) { scale += 0.25; renderPage(currentPage); } }
  function zoomOut() { if (scale > 0.5) { scale -= 0.25; renderPage(currentPage); } }

  function closeModal() {
    modal.style.display = 'none';
    document.body.style.overflow = 'auto';
  }

  eventFilter.addEventListener('change', filterDocuments);
  searchInput.addEventListener('input', filterDocuments);
  document.getElementById('modal-close').addEventListener('click', closeModal);
  document.getElementById('modal-close-button').addEventListener('click', closeModal);
  document.getElementById('prev-page').addEventListener('click', goPreviousPage);
  document.getElementById('next-page').addEventListener('click', goNextPage);
  document.getElementById('zoom-in').addEventListener('click', zoomIn);
  document.getElementById('zoom-out').addEventListener('click', zoomOut);

  filterDocuments();

  let deferredPrompt = null;
  window.addEventListener('beforeinstallprompt', event => {
    event.preventDefault();
    deferredPrompt = event;
    installButton.style.display = 'block';
  });
  installButton.addEventListener('click', () => {
    if (!deferredPrompt) return;
    deferredPrompt.prompt();
    deferredPrompt.userChoice.then(choice => {
      if (choice.outcome === 'accepted') installButton.style.display = 'none';
      deferredPrompt = null;
    });
  });

  if ('serviceWorker' in navigator) {
    window.addEventListener('load', () => {
      navigator.serviceWorker.register('/service-worker.js').catch(err => {
        console.log('ServiceWorker registration failed: ', err);
      });
    });
  }
"""


def _event_options(event_mappings: Dict[str, str]) -> str:
    options = ['<option value="all">All events</option>']
    for event_id, name in event_mappings.items():
        options.append(f'<option value="{html.escape(str(event_id))}">{html.escape(name)}</option>')
    return "".join(options)


def render_index_page(documents: List[Dict[str, Any]], event_mappings: Dict[str, str]) -> str:
    """Full PWA page with the document list embedded."""
    year = dt.date.today().year
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>FIA Formula 1 Documents</title>
  <link rel="manifest" href="/manifest.json">
  <meta name="theme-color" content="{THEME_COLOR}">
  <link rel="icon" href="/assets/images/favicon.ico">
  <link rel="apple-touch-icon" href="/assets/images/fia-formula-logo.png">
  <script src="{PDFJS_URL}"></script>
  <script>
    window.pdfjsLib = window.pdfjsLib || {{}};
    window.pdfjsLib.GlobalWorkerOptions = window.pdfjsLib.GlobalWorkerOptions || {{}};
    window.pdfjsLib.GlobalWorkerOptions.workerSrc = '{PDFJS_WORKER_URL}';
  </script>
  <style>{_STYLE}</style>
</head>
<body>
  <header>
    <div class="logo">
      <img src="/assets/images/fia-formula-logo.png" alt="FIA Formula 1">
      <h1>FIA F1 Documents</h1>
    </div>
    <button id="install-button">Install App</button>
  </header>

  <div class="container">
    <div class="filter-container">
      <select id="event-filter">{_event_options(event_mappings)}</select>
      <input type="text" id="search" class="search-box" placeholder="Search documents...">
    </div>
    <div class="documents" id="document-container"></div>
    <div class="empty-state" id="empty-state">
      <h2>No documents found</h2>
      <p>Try another event or search term.</p>
    </div>
  </div>

  <div class="modal" id="document-modal">
    <div class="modal-header">
      <span class="modal-title" id="modal-title"></span>
      <button class="modal-close" id="modal-close">&times;</button>
    </div>
    <div class="modal-content">
      <div class="modal-loading" id="modal-loading">
        <div class="spinner"></div>
        <p>Loading document...</p>
      </div>
      <div id="pdf-viewer" class="pdf-container">
        <div id="pdf-controls">
          <button id="prev-page" class="pdf-control-btn">Previous</button>
          <span id="page-info">Page <span id="page-num">0</span> / <span id="page-count">0</span></span>
          <button id="next-page" class="pdf-control-btn">Next</button>
          <button id="zoom-in" class="pdf-control-btn">+</button>
          <button id="zoom-out" class="pdf-control-btn">-</button>
        </div>
        <canvas id="pdf-canvas"></canvas>
      </div>
    </div>
    <div class="modal-actions">
      <button id="download-document">Download</button>
      <button id="modal-close-button">Close</button>
    </div>
  </div>

  <footer>&copy; {year} FIA Formula 1 Document Viewer - Unofficial PWA</footer>

  <script>
  const documents = {_script_json(documents)};
  const eventMappings = {_script_json(event_mappings)};
{_SCRIPT}
  </script>
</body>
</html>"""
