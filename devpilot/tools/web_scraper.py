"""WebScraper tool: readable text of a web page"""

import logging
import re

import httpx
from bs4 import BeautifulSoup

from .base import BaseTool

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "nav", "header", "footer"]
CONTENT_SELECTOR = "main, article, .content, #content"


def extract_text(html: str) -> str:
    """Main content text of an HTML page, falling back to the body"""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()

    content = "".join(el.get_text() for el in soup.select(CONTENT_SELECTOR))
    if not content.strip():
        body = soup.body or soup
        content = body.get_text()

    return re.sub(r"\n{3,}", "\n\n", content).strip()


class WebScraper(BaseTool):
    name = "WebScraper"
    description = "Fetch a web page and return its main text content"
    operations = {"scrape": "scrape"}

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def scrape(self, url: str) -> str:
        logger.info(f"Scraping {url}")
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
        return extract_text(response.text)
