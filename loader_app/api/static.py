import base64

from fastapi import APIRouter
from fastapi.responses import Response

router = APIRouter(tags=["static"])

# 16x16 GIF served for browsers probing /favicon.ico
FAVICON = base64.b64decode(
    "R0lGODlhEAAQAJECAAAAzFZWzP///wAAACH5BAEAAAIALAAAAAAQABAAAAIplI+py+0PUQAgSGoNQFt0LWTVOE6G"
    "uX1H6onTVHaW2tEHnJ1YxPc+UwAAOw=="
)
ROBOTS_TXT = "User-agent: *\nDisallow:\n"


@router.get("/favicon.ico", include_in_schema=False)
def favicon():
    """Answered before the application is bootstrapped, so no 404s in logs"""
    return Response(content=FAVICON, media_type="image/gif")


@router.get("/robots.txt", include_in_schema=False)
def robots_txt():
    return Response(content=ROBOTS_TXT, media_type="text/plain; charset=utf-8")
