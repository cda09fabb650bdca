"""HTML page rendering for the search and title experience."""

from __future__ import annotations

import json
from textwrap import dedent

from .config import Settings


PAGE_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__APP_NAME__</title>
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #141414;
            --text-primary: #f5f5f5;
            --text-muted: #a6a6a6;
            --outline: #1c1c1c;
            --outline-strong: #2b2b2b;
            background: #000000;
            color: var(--text-primary);
        }
        * { box-sizing: border-box; }
        body { margin: 0; min-height: 100vh; background: #000000; }
        a { color: inherit; text-decoration-color: var(--outline-strong); }
        main { max-width: 960px; margin: 0 auto; padding: 3rem 1.5rem 4rem; }
        header { text-align: center; margin-bottom: 2rem; }
        header h1 { margin-bottom: 0.5rem; font-size: clamp(2rem, 5vw, 3rem); letter-spacing: -0.03em; }
        header p { margin: 0 auto; max-width: 640px; color: var(--text-muted); }
        input[type=search] {
            width: 100%; padding: 0.85rem 1rem; border-radius: 14px;
            border: 1px solid var(--outline-strong); background: var(--surface);
            color: var(--text-primary); font-size: 1rem;
        }
        .results { list-style: none; padding: 0; margin: 0.5rem 0 0; }
        .results li {
            display: flex; gap: 0.75rem; align-items: center; padding: 0.5rem;
            border-radius: 12px; cursor: pointer;
        }
        .results li:hover { background: var(--surface); }
        .results img { width: 40px; border-radius: 6px; }
        .grid { display: grid; gap: 1.5rem; margin-top: 2rem; }
        .card {
            background: var(--surface); border: 1px solid var(--outline);
            border-radius: 20px; padding: 1.5rem;
        }
        .card h2 { margin-top: 0; font-size: 1.25rem; }
        .muted { color: var(--text-muted); }
        .chips { display: flex; flex-wrap: wrap; gap: 0.5rem; }
        .chip {
            border: 1px solid var(--outline-strong); border-radius: 999px;
            padding: 0.3rem 0.75rem; font-size: 0.85rem;
        }
        iframe { width: 100%; aspect-ratio: 16 / 9; border: 0; border-radius: 14px; }
    </style>
</head>
<body>
    <main>
        <header>
            <h1>__APP_NAME__</h1>
            <p>Search for a movie or show to see ratings, a trailer and where to watch it.</p>
        </header>
        <input id="search" type="search" placeholder="Search movies and TV shows" autocomplete="off" />
        <ul id="results" class="results"></ul>
        <section id="title" class="grid" hidden></section>
    </main>
    <script>
        (function () {
            const defaults = JSON.parse('__DEFAULTS_JSON__');
            const searchInput = document.getElementById('search');
            const resultsList = document.getElementById('results');
            const titleSection = document.getElementById('title');
            let debounce = null;

            function escapeHtml(value) {
                return String(value ?? '').replace(/[&<>"']/g, (ch) => ({
                    '&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'
                })[ch]);
            }

            function card(heading, body) {
                return `<div class="card"><h2>${escapeHtml(heading)}</h2>${body}</div>`;
            }

            function unavailable(label) {
                return `<p class="muted">${escapeHtml(label)} not available</p>`;
            }

            async function runSearch(query) {
                if (query.length < defaults.minQueryLength) {
                    resultsList.innerHTML = '';
                    return;
                }
                const response = await fetch(`/search?q=${encodeURIComponent(query)}`);
                const payload = await response.json();
                if (!response.ok) {
                    resultsList.innerHTML = `<li class="muted">${escapeHtml(payload.error)}</li>`;
                    return;
                }
                resultsList.innerHTML = payload.map((hit) => `
                    <li data-type="${hit.type}" data-id="${hit.id}">
                        ${hit.posterUrl ? `<img src="${escapeHtml(hit.posterUrl)}" alt="" />` : ''}
                        <span>${escapeHtml(hit.title)}</span>
                        <span class="muted">${escapeHtml((hit.releaseDate || '').slice(0, 4))}</span>
                    </li>`).join('');
            }

            function renderRatings(detail) {
                const entries = [
                    ['TMDB', detail.voteAverage ? detail.voteAverage.toFixed(1) : null],
                    ['IMDb', detail.imdbRating],
                    ['Metacritic', detail.metascore],
                    ['Rotten Tomatoes', detail.rottenTomatoes ? `${detail.rottenTomatoes}%` : null],
                ].filter(([, value]) => value);
                if (!entries.length) {
                    return unavailable('Ratings');
                }
                return `<div class="chips">${entries.map(([label, value]) =>
                    `<span class="chip">${escapeHtml(label)}: ${escapeHtml(value)}</span>`).join('')}</div>`;
            }

            function renderOffers(offers) {
                return `<div class="chips">${offers.map((offer) => {
                    const label = escapeHtml(offer.provider) + (offer.price ? ` · ${escapeHtml(offer.price)}` : '');
                    return offer.deepLink
                        ? `<a class="chip" href="${escapeHtml(offer.deepLink)}" target="_blank" rel="noopener">${label}</a>`
                        : `<span class="chip">${label}</span>`;
                }).join('')}</div>`;
            }

            function renderAvailability(availability) {
                const sections = [['Streaming', availability.streaming], ['Rent', availability.rent], ['Buy', availability.buy]]
                    .filter(([, offers]) => offers.length)
                    .map(([label, offers]) => `<h3>${label}</h3>${renderOffers(offers)}`);
                return sections.length
                    ? sections.join('')
                    : '<p class="muted">No streaming, rental, or purchase options available</p>';
            }

            async function loadOverview(type, id, fallback) {
                const target = document.getElementById('ai-overview');
                try {
                    const response = await fetch('/ai-overview', {
                        method: 'POST',
                        headers: { 'Content-Type': 'application/json' },
                        body: JSON.stringify({ type, id }),
                    });
                    if (!response.ok) {
                        throw new Error('overview unavailable');
                    }
                    const payload = await response.json();
                    const similar = payload.similarTitles.length
                        ? `<p class="muted">Similar: ${payload.similarTitles.map(escapeHtml).join(', ')}</p>`
                        : '';
                    target.innerHTML = `<p>${escapeHtml(payload.overviewText)}</p>${similar}`;
                } catch (err) {
                    target.innerHTML = `<p>${escapeHtml(fallback)}</p>`;
                }
            }

            async function loadTitle(type, id) {
                resultsList.innerHTML = '';
                titleSection.hidden = false;
                titleSection.innerHTML = '<p class="muted">Loading…</p>';
                const response = await fetch(`/title?type=${type}&id=${id}`);
                const detail = await response.json();
                if (!response.ok) {
                    titleSection.innerHTML = card('Error', `<p>${escapeHtml(detail.error)}</p>`);
                    return;
                }
                const credits = detail.type === 'movie' ? detail.directors : detail.creators;
                titleSection.innerHTML = [
                    card(detail.title, `
                        <p class="muted">${escapeHtml([(detail.releaseDate || '').slice(0, 4), detail.runtimeLabel, detail.genres.join(', ')].filter(Boolean).join(' · '))}</p>
                        ${credits.length ? `<p>${detail.type === 'movie' ? 'Directed by' : 'Created by'} ${escapeHtml(credits.join(', '))}</p>` : ''}`),
                    card('Overview', '<div id="ai-overview"><p class="muted">Generating overview…</p></div>'),
                    card('Ratings', renderRatings(detail)),
                    card('Where to Watch', renderAvailability(detail.watchAvailability)),
                    card('Trailer', detail.trailerKey
                        ? `<iframe src="https://www.youtube.com/embed/${encodeURIComponent(detail.trailerKey)}" allowfullscreen></iframe>`
                        : unavailable('Trailer')),
                    card('Cast', detail.cast.length
                        ? `<div class="chips">${detail.cast.map((member) =>
                            `<span class="chip">${escapeHtml(member.name)}${member.character ? ` as ${escapeHtml(member.character)}` : ''}</span>`).join('')}</div>`
                        : unavailable('Cast')),
                ].join('');
                loadOverview(detail.type, detail.id, detail.overview);
            }

            searchInput.addEventListener('input', () => {
                clearTimeout(debounce);
                debounce = setTimeout(() => runSearch(searchInput.value.trim()), defaults.debounceMs);
            });
            resultsList.addEventListener('click', (event) => {
                const item = event.target.closest('li[data-id]');
                if (item) {
                    loadTitle(item.dataset.type, Number(item.dataset.id));
                }
            });
        })();
    </script>
</body>
</html>
"""
)


def render_index_page(settings: Settings, *, min_query_length: int = 2) -> str:
    """Return the full HTML for the `/` landing page."""

    defaults = {
        "appName": settings.app_name,
        "minQueryLength": min_query_length,
        "debounceMs": 250,
    }
    defaults_json = json.dumps(defaults).replace("</", "<\\/")

    html = PAGE_TEMPLATE
    replacements = {
        "__APP_NAME__": settings.app_name,
        "__DEFAULTS_JSON__": defaults_json,
    }
    for placeholder, value in replacements.items():
        html = html.replace(placeholder, value)
    return html
