"""
Driver-driven catalog extraction engine.

A driver is a small set of CSS selectors describing how one website lays
out its catalog, entry and episode pages. This package turns raw HTML plus
a driver into structured catalog entries and sub-entries, and probes a
driver against live pages before it is trusted.

Entry points: anidock.crawler.crawl_with_driver,
anidock.extract.sub_entries.extract_sub_entries and
anidock.probe.validate_selectors.
"""
