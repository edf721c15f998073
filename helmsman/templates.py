"""
Helmsman help renderer: template source in, text out.

Templates are Jinja2 sources evaluated against plain values, so replacing one
only changes what is printed, never how commands are resolved.

Listing context (USAGE_TEMPLATE)
- name: program name.
- commands: registered commands sorted by name (use `command.runnable` to filter).
- width: column width for names (max(11, longest runnable name)).
- flags: rendered global flag defaults ("" when none are defined).

Per-command context (HELP_TEMPLATE)
- name: program name.
- command: the resolved Command.
- flags: rendered defaults of the command's flags ("" when none).

Filters
- pad(width): left-align a value in a fixed-width column.
"""
import jinja2

USAGE_TEMPLATE = """\
{{ name }} runs one of the commands below.

Usage:

    {{ name }} {% if flags %}[flags] {% endif %}<command> [arguments]

The commands are:

{% for command in commands if command.runnable %}
    {{ command.name | pad(width) }} {{ command.short }}
{% endfor %}
{% if flags %}

The flags are:

{{ flags }}
{% endif %}

Use "{{ name }} help <command>" for more information about a command.
"""

HELP_TEMPLATE = """\
{% if command.runnable %}
usage: {{ name }} {{ command.usage }}

{% endif %}
{{ command.long or command.short }}
{% if flags %}

The flags are:

{{ flags }}
{% endif %}
"""


def _pad(value, width=11):
    return str(value).ljust(width)


_environment = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=jinja2.StrictUndefined,
)
_environment.filters["pad"] = _pad


def compile(source, /):
    """
    Parse template source eagerly so mistakes surface at configuration time.

    Raises
    - TypeError: source is not a string.
    - ValueError: the source is not a valid template.
    """
    if not isinstance(source, str):
        raise TypeError("template source must be a string")
    try:
        return _environment.from_string(source)
    except jinja2.TemplateSyntaxError as error:
        raise ValueError(f"invalid template at line {error.lineno}: {error.message}") from error


def render(template, /, **context):
    """
    Evaluate a compiled template (or raw source) into text.
    """
    if isinstance(template, str):
        template = compile(template)
    return template.render(**context)


def column(commands, /, minimum=11):
    """
    Name column width for a listing of the runnable commands.
    """
    return max([minimum, *(len(command.name) for command in commands if command.runnable)])


__all__ = (
    "USAGE_TEMPLATE",
    "HELP_TEMPLATE",
    "compile",
    "render",
    "column",
)
