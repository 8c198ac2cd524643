from collections.abc import Mapping

import bleach


class BleachHtmlSanitizer:
    """HtmlSanitizerPort backed by bleach.clean."""

    def clean(
        self,
        html: str,
        *,
        tags: frozenset[str],
        attributes: Mapping[str, frozenset[str]],
        protocols: frozenset[str],
        allow_data_images: bool,
    ) -> str:
        def allow_attribute(tag: str, name: str, value: str) -> bool:
            if name not in attributes.get(tag, frozenset()):
                return False
            # data: is only ever allowed as an image source
            if value.strip().lower().startswith("data:"):
                return (
                    allow_data_images
                    and tag == "img"
                    and name == "src"
                    and value.strip().lower().startswith("data:image/")
                )
            return True

        allowed_protocols = set(protocols)
        if allow_data_images:
            allowed_protocols.add("data")

        cleaned: str = bleach.clean(
            html,
            tags=set(tags),
            attributes=allow_attribute,
            protocols=allowed_protocols,
            strip=True,
        )
        return cleaned.strip()
