"""Link-header pagination for the GitHub REST API.

GitHub returns pagination links as::

    Link: <https://api.github.com/user/repos?page=2>; rel="next",
          <https://api.github.com/user/repos?page=5>; rel="last"
"""


def parse_next_link(link_header: str | None) -> str | None:
    """Return the URL tagged ``rel="next"`` in a Link header, if any.

    Args:
        link_header: Raw value of the Link response header

    Returns:
        The next page URL, or None on the last page or a malformed header
    """
    if not link_header:
        return None

    for item in link_header.split(","):
        segments = [segment.strip() for segment in item.split(";")]
        if len(segments) < 2:
            continue
        url_part, params = segments[0], segments[1:]
        if not (url_part.startswith("<") and url_part.endswith(">")):
            continue
        if any(param.replace(" ", "") == 'rel="next"' for param in params):
            return url_part[1:-1]

    return None
