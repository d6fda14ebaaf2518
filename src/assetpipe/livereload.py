"""
Live-reload client snippet and its reconnect policy.

The snippet is injected before </body> of the development index document. It
opens a WebSocket to the notification channel and reacts to two messages:

  css   re-request every relative stylesheet, redraw once all have loaded
  html  reload the page

After a dropped connection it reconnects with capped exponential backoff and
full jitter: random() * min(2^attempt - 1, 30) seconds. The attempt counter
resets to 1 whenever a connection opens. `reconnect_interval` is the Python
rendition of the same formula.
"""

from __future__ import annotations

import random
import re
from typing import Callable

MAX_RECONNECT_INTERVAL = 30.0

CLIENT_SCRIPT = """<script>
    'use strict';
    (function(){
        var attempts = 1;
        var loadingCss = 0;

        function createWebSocket() {
            var ws = new WebSocket('__PROTOCOL__://localhost:__PORT__');

            ws.onopen = function () {
                attempts = 1;
            };

            ws.onmessage = function (event) {
                if (event.data === 'css') {
                    [].slice.call(document.getElementsByTagName('link')).forEach(function (link) {
                        if (link.rel !== 'stylesheet') {
                            return;
                        }
                        if (link.getAttribute('href').match(/^(https?:)?\\/\\//)) {
                            // absolute URLs are external
                            return;
                        }
                        link.setAttribute('href', link.getAttribute('href').replace(/(\\?\\d+)?$/, '?' + new Date().getTime()));
                        loadingCss++;
                        var interval = setInterval(function () {
                            if (!link.sheet || !link.sheet.cssRules.length) {
                                return;
                            }
                            loadingCss--;
                            clearInterval(interval);

                            if (loadingCss !== 0) {
                                return;
                            }
                            // force redraw
                            document.body.style.display = 'none';
                            document.body.style.display = '';
                        }, 100);
                    });
                } else if (event.data === 'html') {
                    window.location.reload();
                }
            };

            ws.onclose = function () {
                var time = generateInterval(attempts);

                setTimeout(function () {
                    attempts++;
                    createWebSocket();
                }, time);
            };
        }

        function generateInterval(k) {
            var maxInterval = (Math.pow(2, k) - 1) * 1000;

            if (maxInterval > __MAX_MS__) {
                maxInterval = __MAX_MS__;
            }

            return Math.random() * maxInterval;
        }

        createWebSocket();
    })();
</script>
"""


def reconnect_interval(attempt: int, rand: Callable[[], float] = random.random) -> float:
    """Seconds to wait before reconnect attempt `attempt` (1-based)."""
    cap = min(2.0 ** attempt - 1, MAX_RECONNECT_INTERVAL)
    return rand() * cap


def client_snippet(protocol: str, port: int) -> str:
    return (
        CLIENT_SCRIPT
        .replace("__PROTOCOL__", protocol)
        .replace("__PORT__", str(port))
        .replace("__MAX_MS__", str(int(MAX_RECONNECT_INTERVAL * 1000)))
    )


_BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)


def inject(html: str, snippet: str) -> str:
    """Insert `snippet` right before the first </body>; unchanged if there is none."""
    return _BODY_CLOSE.sub(lambda m: snippet + m.group(0), html, count=1)
