"""Shared pytest fixtures for the guide service test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from app.services.listings_store import ListingsStore

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test">
  <channel id="ch5.example">
    <display-name>WABC</display-name>
    <display-name>5</display-name>
    <display-name>5 WABC</display-name>
  </channel>
  <channel id="local.example">
    <display-name>Local Access</display-name>
  </channel>
  <channel id="ch15.example">
    <display-name>15</display-name>
    <display-name>KXYZ</display-name>
  </channel>
  <channel id="ch25.example">
    <display-name>25</display-name>
    <display-name>NEWS1</display-name>
  </channel>
  <channel id="ch2.example">
    <display-name>2</display-name>
  </channel>
  <programme start="20240324010000 +0000" stop="20240324020000 +0000" channel="ch5.example">
    <title>Morning Movie</title>
    <category>Drama</category>
    <category>Movie</category>
    <audio><stereo>stereo</stereo></audio>
    <subtitles type="teletext" />
    <rating system="VCHIP"><value>TV-G</value></rating>
    <rating system="MPAA"><value>PG</value></rating>
  </programme>
  <programme start="20240324020000 +0000" stop="20240324023000 +0000" channel="ch5.example">
    <title>News Hour</title>
    <category>Talk</category>
    <category>NEWS</category>
    <rating system="VCHIP"><value>TV-PG</value></rating>
    <rating system="MPAA"><value>R</value></rating>
  </programme>
  <programme start="20240324000000 +0000" stop="20240324060000 +0000" channel="ch15.example">
    <title>Marathon</title>
    <category>Sports Event</category>
    <stereo />
  </programme>
  <programme start="20240324013000 +0000" stop="20240324014500 +0000" channel="ch25.example">
    <title>Kids Show</title>
    <category>kids</category>
  </programme>
  <programme start="20240324003000 +0000" stop="20240324010000 +0000" channel="ch2.example">
    <title>Early Show</title>
  </programme>
  <programme start="20240324010000 +0000" stop="20240324013000 +0000" channel="local.example">
    <title>Council Meeting</title>
    <category>Public Affairs</category>
  </programme>
</tv>
"""


def at(hour: int, minute: int = 0) -> datetime:
    """Instant on the sample feed's day in UTC"""
    return datetime(2024, 3, 24, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def feed_file(tmp_path: Path) -> Path:
    path = tmp_path / "listings.xml"
    path.write_text(SAMPLE_FEED, encoding="utf-8")
    return path


@pytest.fixture()
def store(feed_file: Path) -> ListingsStore:
    listings_store = ListingsStore(feed_file)
    listings_store.refresh()
    return listings_store
