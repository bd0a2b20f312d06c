"""
Argosy help/usage formatter.

Rendering is pure: every function returns a rich Text and performs no I/O.
`Text.plain` is deterministic, so help output can be compared verbatim in
golden tests; styles are attached only when colorful=True.

Layout
    Usage: climb [-j] --height <height> <route> <command> [<args>]

    Reach new heights.

    Positional Arguments:
      route             the route to climb

    Options:
      -j, --jump        whether or not to jump
      --height          how high to go
      -h, --help        display usage information

    Commands:
      up                Go up.

    Examples:
      climb --height 5 north

    Notes:
      Use `climb help <command>` for details on [<args>] for a subcommand.

    Error codes:
      2 The rope is too short.

Ordering
- Declaration order within each category, never alphabetical.
- Usage: switches and options, then positionals, then the subcommand.
- Names start at column 2; descriptions start at column 20 and wrap at 80.
  A name reaching column 20 pushes its description to the next line.
- Hidden fields are left out of both the usage line and the tables.

Palette keys (override through __styles__ in __main__)
- usage-label, program-name, description-section
- group-label, argument-description
- option-name, flag-name, metavar, choice
- children, children-description
- examples-label, example, notes-label, note, codes-label, code
"""
from collections import defaultdict

from rich.text import Text

from .schema import Arity, FieldKind

INDENT = "  "
DESCRIPTION_INDENT = 20
WRAP_WIDTH = 80


def _palette(colorful):
    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",  # CYAN → signature info color
        "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
        "description-section": "italic #A3A3A3",  # Neutral gray

        # === Groups / arguments ===
        "group-label": "bold #FFFFFF",  # Pure white headers
        "argument-description": "#9CA3AF",  # Muted gray

        # === Names / metavars ===
        "option-name": "bold #00E6FF",  # CYAN for options
        "flag-name": "bold #22C55E",  # GREEN for switches
        "metavar": "bold #FFD600",  # AMBER for parameters
        "choice": "bold #FF4D94",  # MAGENTA → choices stand out

        # === Subcommands ===
        "children": "bold #36C5F0",  # Sky-blue subcommands
        "children-description": "#9CA3AF",

        # === Examples / Notes / Error codes ===
        "examples-label": "bold #22C55E",
        "example": "#E5E7EB",
        "notes-label": "bold #00E6FF",
        "note": "#D1D5DB",
        "codes-label": "bold #EF4444",
        "code": "bold #FFD600",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    return styler


def _route(schema, path):
    """
    Normalize the command path used in usage lines: a string, a sequence of
    names (joined with spaces), or None for the schema's own name.
    """
    if path is None:
        return schema.name
    if isinstance(path, str):
        return path
    return " ".join(path)


def _plain(fragment):
    return fragment.plain if isinstance(fragment, Text) else str(fragment)


def _metavar(field, styler):
    """
    "<name>" (or "<name...>" when repeated), or "{a,b}" when choices are declared.
    """
    ellipsis = "..." if field.arity is Arity.REPEATED else ""
    if field.choices:
        return Text.assemble(
            "{",
            Text(",").join(Text(str(choice), styler("choice")) for choice in field.choices),
            "}",
            ellipsis,
        )
    return Text.assemble("<", Text(field.metavar + ellipsis, styler("metavar")), ">")


def _usage_element(field, styler):
    match field.kind:
        case FieldKind.SWITCH:
            name = "-" + field.short_name if field.short_name else "--" + field.long_name
            element = Text(name, styler("flag-name"))
        case FieldKind.OPTION:
            name = "-" + field.short_name if field.short_name else "--" + field.long_name
            element = Text.assemble(Text(name, styler("option-name")), " ", _metavar(field, styler))
        case FieldKind.POSITIONAL:
            element = _metavar(field, styler)
        case _:
            element = Text.assemble("<", Text(field.long_name, styler("children")), ">")
            if field.arity is not Arity.REQUIRED:
                element = Text.assemble("[", element, "]")
            return Text.assemble(element, " [<args>]")

    if field.arity is not Arity.REQUIRED:
        element = Text.assemble("[", element, "]")
    return element


def render_usage(schema, path=None, *, colorful=False):
    """
    Render the one-line usage synopsis of a schema.

    Parameters
    - schema: CommandSchema
    - path: str | Sequence[str] | None; the command path shown after "Usage:"
      (defaults to the schema name).
    - colorful: attach palette styles.
    """
    styler = _palette(colorful)
    elements = [Text("Usage:", styler("usage-label")), Text(_route(schema, path), styler("program-name"))]

    visible = [field for field in schema.fields if not field.hidden]
    order = (
        (FieldKind.SWITCH, FieldKind.OPTION),
        (FieldKind.POSITIONAL,),
        (FieldKind.SUBCOMMAND,),
    )
    for kinds in order:
        elements.extend(_usage_element(field, styler) for field in visible if field.kind in kinds)

    return Text(" ").join(elements)


def _describe(name, descr, name_style, descr_style):
    """
    Lay out one table row: the name at column 2, the description at column 20,
    wrapped at WRAP_WIDTH. Returns the list of lines.
    """
    lines = []
    line = Text(INDENT).append(name, name_style)

    if not (descr := _plain(descr or "").strip()):
        return [line]

    if len(line) < DESCRIPTION_INDENT:
        line.append(" " * (DESCRIPTION_INDENT - len(line)))
    else:
        lines.append(line)
        line = Text(" " * DESCRIPTION_INDENT)

    words = descr.split()
    line.append(words[0], descr_style)
    for word in words[1:]:
        if len(line) + len(word) + 1 > WRAP_WIDTH:
            lines.append(line)
            line = Text(" " * DESCRIPTION_INDENT).append(word, descr_style)
        else:
            line.append(" " + word, descr_style)
    lines.append(line)
    return lines


def _literals(heading, literals, route, styler, label, style):
    section = [Text(heading, styler(label))]
    for literal in literals:
        for line in _plain(literal).replace("{command_name}", route).split("\n"):
            section.append(Text(INDENT).append(line, styler(style)))
    return section


def render_help(schema, path=None, *, colorful=False):
    """
    Render the full help text of a schema (usage, description and sections).

    Sections appear only when they have content, separated by one blank line:
    Positional Arguments, Options (always, for the help flag), Commands,
    Examples, Notes, Error codes.
    """
    styler = _palette(colorful)
    route = _route(schema, path)
    sections = [[render_usage(schema, path, colorful=colorful)]]

    if schema.descr:
        descr = schema.descr.copy() if isinstance(schema.descr, Text) and colorful else Text(_plain(schema.descr))
        descr.stylize(styler("description-section"))
        sections.append([descr])

    visible = [field for field in schema.fields if not field.hidden]

    if positionals := [field for field in visible if field.kind is FieldKind.POSITIONAL]:
        section = [Text("Positional Arguments:", styler("group-label"))]
        for field in positionals:
            section.extend(_describe(field.long_name, field.descr, styler("metavar"), styler("argument-description")))
        sections.append(section)

    section = [Text("Options:", styler("group-label"))]
    for field in visible:
        if field.kind not in (FieldKind.SWITCH, FieldKind.OPTION):
            continue
        name = ("-" + field.short_name + ", " if field.short_name else "") + "--" + field.long_name
        style = styler("flag-name") if field.kind is FieldKind.SWITCH else styler("option-name")
        section.extend(_describe(name, field.descr, style, styler("argument-description")))
    section.extend(_describe("-h, --help", "display usage information", styler("flag-name"), styler("argument-description")))
    sections.append(section)

    if (subcommand := schema.subcommand) and not subcommand.hidden:
        section = [Text("Commands:", styler("group-label"))]
        for name, child in subcommand.commands.items():
            descr = _plain(child.descr or "").split("\n")[0]
            section.extend(_describe(name, descr, styler("children"), styler("children-description")))
        sections.append(section)

    if schema.examples:
        sections.append(_literals("Examples:", schema.examples, route, styler, "examples-label", "example"))

    if schema.notes:
        sections.append(_literals("Notes:", schema.notes, route, styler, "notes-label", "note"))

    if schema.error_codes:
        section = [Text("Error codes:", styler("codes-label"))]
        for code, descr in schema.error_codes.items():
            section.append(Text(INDENT).append(str(code), styler("code")).append(" " + descr))
        sections.append(section)

    return Text("\n\n").join(Text("\n").join(section) for section in sections)


__all__ = (
    "render_usage",
    "render_help",
)
