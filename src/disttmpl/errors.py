class DistTemplateError(Exception):
    """Base class for errors raised by disttmpl"""


class ConfigurationError(DistTemplateError):
    """Raise when a finder, rename rule or engine option is malformed or unknown"""


class RenderError(DistTemplateError):
    """Raise when the template engine fails to render a template"""

    def __init__(self, detail: str, template: str | None = None) -> None:
        self.detail = detail
        self.template = template
        if template:
            super().__init__(f"{template}: {detail}")
        else:
            super().__init__(detail)
