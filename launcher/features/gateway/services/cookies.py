"""
Cookie helpers for forwarded requests.
"""


def strip_cookies(cookie_header: str, names) -> str:
    """Remove the named cookies from a Cookie header, keeping the others in order."""
    if not cookie_header:
        return cookie_header

    drop = set(names)
    cookies: list[str] = []
    for cookie_pair in cookie_header.split(";"):
        cookie_pair = cookie_pair.strip()
        if not cookie_pair:
            continue
        name = cookie_pair.split("=", 1)[0].strip()
        if name in drop:
            continue
        cookies.append(cookie_pair)

    return "; ".join(cookies)
