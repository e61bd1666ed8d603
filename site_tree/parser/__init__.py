"""
Stateless parsers used by the crawler: HTML links and robots.txt rules.
"""
