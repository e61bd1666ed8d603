"""
Crawl engine: frontier, worker pool, rate limiter, termination and the page tree.
"""
