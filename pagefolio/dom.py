"""Document-tree helpers for the gallery markup, built on BeautifulSoup."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

CONTAINER_ID = "portfolio-container"
LOADER_ID = "loading-overlay"
HIDDEN_CLASS = "is-hidden"
PAGE_CLASS = "portfolio-page"
ZOOM_IMAGE_CLASS = "zoomist-image"

_SKELETON = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"/><title></title></head>
<body></body>
</html>
"""


def new_document(title: str = "Portfolio") -> BeautifulSoup:
    """Create the page shell: loading overlay plus the empty page container."""
    soup = BeautifulSoup(_SKELETON, "html.parser")
    soup.title.string = title
    overlay = create_element(
        soup,
        "div",
        "loading-overlay",
        {"id": LOADER_ID, "aria-hidden": "true", "role": "status"},
    )
    overlay.append(create_element(soup, "span", "loading-overlay-label"))
    add_class(overlay, HIDDEN_CLASS)
    soup.body.append(overlay)
    soup.body.append(create_element(soup, "main", None, {"id": CONTAINER_ID}))
    return soup


def create_element(
    soup: BeautifulSoup,
    tag: str,
    class_name: Optional[str] = None,
    attrs: Optional[Mapping[str, str]] = None,
    text: Optional[str] = None,
    children: Optional[Iterable[Tag]] = None,
) -> Tag:
    element = soup.new_tag(tag)
    if class_name:
        element["class"] = class_name.split()
    for key, value in (attrs or {}).items():
        element[key] = str(value)
    if text is not None:
        element.string = text
    for child in children or ():
        if child is not None:
            element.append(child)
    return element


def classes(element: Tag) -> List[str]:
    value = element.get("class") or []
    if isinstance(value, str):
        value = value.split()
    return list(value)


def has_class(element: Tag, name: str) -> bool:
    return name in classes(element)


def add_class(element: Tag, name: str) -> None:
    current = classes(element)
    if name not in current:
        current.append(name)
    element["class"] = current


def remove_class(element: Tag, name: str) -> None:
    current = [value for value in classes(element) if value != name]
    if current:
        element["class"] = current
    elif element.has_attr("class"):
        del element["class"]


def get_style(element: Tag) -> Dict[str, str]:
    styles: Dict[str, str] = {}
    for declaration in (element.get("style") or "").split(";"):
        if ":" not in declaration:
            continue
        name, value = declaration.split(":", 1)
        styles[name.strip()] = value.strip()
    return styles


def _write_style(element: Tag, styles: Mapping[str, str]) -> None:
    if styles:
        element["style"] = "; ".join(f"{name}: {value}" for name, value in styles.items())
    elif element.has_attr("style"):
        del element["style"]


def set_style(element: Tag, values: Mapping[str, str]) -> None:
    styles = get_style(element)
    styles.update(values)
    _write_style(element, styles)


def remove_style(element: Tag, name: str) -> None:
    styles = get_style(element)
    if styles.pop(name, None) is not None:
        _write_style(element, styles)


def container(soup: BeautifulSoup) -> Optional[Tag]:
    return soup.find(id=CONTAINER_ID)


def create_page_slot(soup: BeautifulSoup, page_number: int) -> Tag:
    return create_element(
        soup,
        "div",
        f"{PAGE_CLASS} loading",
        {"data-page": str(page_number), "aria-busy": "true"},
    )


def create_skeleton(soup: BeautifulSoup) -> Tag:
    """Page placeholder with three bouncing dots."""
    loader = create_element(
        soup,
        "div",
        "loader",
        children=[create_element(soup, "span", "ball") for _ in range(3)],
    )
    return create_element(soup, "div", "page-loader", children=[loader])


def create_fallback(soup: BeautifulSoup, message: str = "Unable to load this page.") -> Tag:
    return create_element(
        soup,
        "div",
        "page-fallback",
        children=[
            create_element(soup, "div", "page-fallback-icon", text="⚠️"),
            create_element(soup, "p", text=message),
        ],
    )


def create_image(soup: BeautifulSoup, src: str, alt: str) -> Tag:
    return create_element(
        soup,
        "img",
        "portfolio-image",
        {"src": src, "alt": alt, "decoding": "async"},
    )


def create_zoom_structure(soup: BeautifulSoup, image: Tag) -> Tag:
    """Wrap ``image`` in the container/wrapper/image trio the zoom overlay expects."""
    zoom_image = create_element(soup, "div", ZOOM_IMAGE_CLASS, children=[image])
    wrapper = create_element(soup, "div", "zoomist-wrapper", children=[zoom_image])
    return create_element(soup, "div", "zoomist-container", children=[wrapper])


def replace_children(element: Tag, *children: Tag) -> None:
    element.clear()
    for child in children:
        element.append(child)


class LoadingIndicator:
    """The global loading overlay shown while a page is being waited on."""

    DEFAULT_MESSAGE = "Loading content…"

    def __init__(self, soup: BeautifulSoup) -> None:
        self.element = soup.find(id=LOADER_ID)
        self.label = (
            self.element.find(class_="loading-overlay-label")
            if self.element is not None
            else None
        )
        self.message: Optional[str] = None

    @property
    def visible(self) -> bool:
        return self.element is not None and not has_class(self.element, HIDDEN_CLASS)

    def _set_label(self, message: Optional[str]) -> None:
        if message:
            self.message = message
            if self.label is not None:
                self.label.string = message

    def show(self, message: str = DEFAULT_MESSAGE) -> None:
        if self.element is None:
            return
        self._set_label(message)
        remove_class(self.element, HIDDEN_CLASS)
        self.element["aria-hidden"] = "false"
        self.element["aria-busy"] = "true"

    def hide(self, message: Optional[str] = None) -> None:
        if self.element is None:
            return
        self._set_label(message)
        add_class(self.element, HIDDEN_CLASS)
        self.element["aria-hidden"] = "true"
        if self.element.has_attr("aria-busy"):
            del self.element["aria-busy"]
