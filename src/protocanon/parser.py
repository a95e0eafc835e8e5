"""
Recursive-descent parser for proto2 / proto3 source text.

Produces a raw `ProtoFile`: declarations in source order, labels and defaults
as written, every declaration annotated with its span and leading comments.
Keywords are contextual: `message`, `optional`, `max`, ... are identifiers
unless their position makes them a keyword.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import descriptor as D
from .errors import ParseError
from .lexer import parse_int_literal
from .spans import Annotation, Span
from .tokens import Token, TokenKind


_LABELS: dict[str, D.Cardinality] = {
    "optional": D.Cardinality.OPTIONAL,
    "repeated": D.Cardinality.REPEATED,
    "required": D.Cardinality.REQUIRED,
}

_SYNTAXES: dict[str, D.Syntax] = {s.value: s for s in D.Syntax}


@dataclass(slots=True)
class Parser:
    tokens: list[Token]
    i: int = 0

    # -----------------------------------------------------------------------
    # Token helpers
    # -----------------------------------------------------------------------

    def peek(self, n: int = 0) -> Token:
        j = min(self.i + n, len(self.tokens) - 1)
        return self.tokens[j]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind is not TokenKind.EOF:
            self.i += 1
        return tok

    def at(self, kind: TokenKind, n: int = 0) -> bool:
        return self.peek(n).kind is kind

    def at_word(self, word: str, n: int = 0) -> bool:
        return self.peek(n).is_word(word)

    def accept(self, kind: TokenKind) -> Token | None:
        if self.at(kind):
            return self.advance()
        return None

    def expect(self, kind: TokenKind, *, what: str | None = None, hint: str | None = None) -> Token:
        if self.at(kind):
            return self.advance()
        want = what or repr(kind.value)
        raise self.error(f"expected {want}", hint=hint)

    def expect_word(self, word: str) -> Token:
        if self.at_word(word):
            return self.advance()
        raise self.error(f"expected {word!r}")

    def error(self, message: str, *, hint: str | None = None, tok: Token | None = None) -> ParseError:
        tok = tok or self.peek()
        return ParseError(span=tok.span, message=f"{message}, found {tok.display()}", hint=hint)

    def annotate(self, first: Token) -> Annotation:
        last = self.tokens[self.i - 1] if self.i > 0 else first
        return Annotation(span=first.span.join(last.span), comments=first.comments)

    # -----------------------------------------------------------------------
    # Names and constants
    # -----------------------------------------------------------------------

    def ident(self, what: str = "identifier") -> str:
        return self.expect(TokenKind.IDENT, what=what).lexeme

    def dotted_name(self, *, allow_absolute: bool) -> str:
        parts: list[str] = []
        if allow_absolute and self.accept(TokenKind.DOT):
            parts.append("")
        parts.append(self.ident("type name"))
        while self.at(TokenKind.DOT):
            self.advance()
            parts.append(self.ident("identifier after '.'"))
        return ".".join(parts)

    def option_name(self) -> str:
        if self.accept(TokenKind.LPAREN):
            inner = self.dotted_name(allow_absolute=True)
            self.expect(TokenKind.RPAREN)
            name = f"({inner})"
        else:
            name = self.ident("option name")
        while self.accept(TokenKind.DOT):
            if self.accept(TokenKind.LPAREN):
                inner = self.dotted_name(allow_absolute=True)
                self.expect(TokenKind.RPAREN)
                name += f".({inner})"
            else:
                name += "." + self.ident("option name")
        return name

    def literal(self) -> tuple[Token, bytes]:
        # Adjacent literals concatenate: "a" "b" == "ab".
        first = self.expect(TokenKind.STRING, what="string literal")
        data = first.data
        while self.at(TokenKind.STRING):
            data += self.advance().data
        return first, data

    def string(self) -> str:
        """A string literal that must be text: paths, names, syntax."""
        first, data = self.literal()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise ParseError(
                span=first.span,
                message="string literal is not valid UTF-8",
                hint="only option values may hold arbitrary bytes",
            ) from None

    def string_value(self) -> str | bytes:
        """An option value literal: text when it is UTF-8, raw bytes otherwise."""
        _, data = self.literal()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data

    def integer(self, what: str = "integer") -> int:
        return parse_int_literal(self.expect(TokenKind.INT, what=what).lexeme)

    def constant(self) -> D.OptionValue:
        tok = self.peek()
        if tok.kind is TokenKind.INT:
            self.advance()
            return parse_int_literal(tok.lexeme)
        if tok.kind is TokenKind.FLOAT:
            self.advance()
            if tok.lexeme.endswith(("inf", "nan")):
                return D.Identifier(tok.lexeme.lstrip("+"))
            return float(tok.lexeme)
        if tok.kind is TokenKind.STRING:
            return self.string_value()
        if tok.kind is TokenKind.LBRACE:
            return self.aggregate()
        if tok.kind is TokenKind.IDENT or tok.kind is TokenKind.DOT:
            name = self.dotted_name(allow_absolute=True)
            if name == "true":
                return True
            if name == "false":
                return False
            return D.Identifier(name)
        raise self.error("expected a constant", hint="use a number, string, identifier, true/false or { ... }")

    def aggregate(self) -> D.Aggregate:
        # `< ... >` is the alternate text-format message delimiter.
        if self.accept(TokenKind.LANGLE):
            close = TokenKind.RANGLE
        else:
            self.expect(TokenKind.LBRACE)
            close = TokenKind.RBRACE
        fields: list[tuple[str, D.OptionValue]] = []
        while not self.accept(close):
            if self.at(TokenKind.EOF):
                raise self.error("unterminated aggregate value", hint=f"add closing {close.value}")
            if self.accept(TokenKind.LBRACKET):
                key = "[" + self.dotted_name(allow_absolute=False) + "]"
                self.expect(TokenKind.RBRACKET)
            else:
                key = self.ident("field name in aggregate")
            colon = self.accept(TokenKind.COLON) is not None
            if self.at(TokenKind.LBRACE) or self.at(TokenKind.LANGLE):
                fields.append((key, self.aggregate()))
            elif not colon:
                raise self.error("expected ':' after aggregate field name")
            elif self.accept(TokenKind.LBRACKET):
                # `a: [1, 2]` is shorthand for `a: 1 a: 2`.
                while not self.accept(TokenKind.RBRACKET):
                    if self.at(TokenKind.LANGLE):
                        fields.append((key, self.aggregate()))
                    else:
                        fields.append((key, self.constant()))
                    if not self.at(TokenKind.RBRACKET):
                        self.expect(TokenKind.COMMA, what="',' or ']'")
            else:
                fields.append((key, self.constant()))
            if not self.accept(TokenKind.COMMA):
                self.accept(TokenKind.SEMI)
        return D.Aggregate(fields=tuple(fields))

    def options_block(self) -> list[tuple[str, D.OptionValue]]:
        """`[a = 1, (b).c = "x"]`; caller checks the leading '['."""
        self.expect(TokenKind.LBRACKET)
        out = [self.option_assignment()]
        while self.accept(TokenKind.COMMA):
            out.append(self.option_assignment())
        self.expect(TokenKind.RBRACKET, what="',' or ']'")
        return out

    def option_assignment(self) -> tuple[str, D.OptionValue]:
        name = self.option_name()
        self.expect(TokenKind.EQ)
        return (name, self.constant())

    def option_statement(self) -> tuple[str, D.OptionValue]:
        self.expect_word("option")
        opt = self.option_assignment()
        self.expect(TokenKind.SEMI)
        return opt

    # -----------------------------------------------------------------------
    # File
    # -----------------------------------------------------------------------

    def parse_file(self) -> D.ProtoFile:
        first = self.peek()
        syntax: D.Syntax | None = None
        package: str | None = None
        package_tok: Token | None = None
        imports: list[D.Import] = []
        messages: list[D.MessageDecl] = []
        enums: list[D.EnumDecl] = []
        services: list[D.ServiceDecl] = []
        extends: list[D.ExtendDecl] = []
        options: list[tuple[str, D.OptionValue]] = []
        seen_statement = False

        while not self.at(TokenKind.EOF):
            tok = self.peek()
            if self.accept(TokenKind.SEMI):
                continue
            if tok.is_word("syntax") and self.at(TokenKind.EQ, 1):
                if syntax is not None:
                    raise ParseError(span=tok.span, message="duplicate syntax declaration")
                if seen_statement:
                    raise ParseError(
                        span=tok.span,
                        message="syntax declaration must be the first statement",
                        hint="move the syntax line to the top of the file",
                    )
                syntax = self.syntax_statement()
            elif tok.is_word("edition") and self.at(TokenKind.EQ, 1):
                raise ParseError(
                    span=tok.span,
                    message="editions syntax is not supported",
                    hint='use: syntax = "proto3"; or syntax = "proto2";',
                )
            elif tok.is_word("import"):
                imports.append(self.import_statement())
            elif tok.is_word("package"):
                if package_tok is not None:
                    raise ParseError(span=tok.span, message="duplicate package declaration")
                package_tok = tok
                self.advance()
                package = self.dotted_name(allow_absolute=False)
                self.expect(TokenKind.SEMI)
            elif tok.is_word("option"):
                options.append(self.option_statement())
            elif tok.is_word("message"):
                messages.append(self.message())
            elif tok.is_word("enum"):
                enums.append(self.enum())
            elif tok.is_word("service"):
                services.append(self.service())
            elif tok.is_word("extend"):
                extends.append(self.extend())
            else:
                raise self.error(
                    "unexpected token at top level",
                    hint="expected one of: syntax, import, package, option, message, enum, service, extend",
                )
            seen_statement = True

        return D.ProtoFile(
            package=package,
            syntax=syntax or D.Syntax.LEGACY,
            imports=tuple(imports),
            messages=tuple(messages),
            enums=tuple(enums),
            services=tuple(services),
            extends=tuple(extends),
            options=tuple(options),
            annotation=Annotation(span=Span.at_start(first.span.file), comments=first.comments),
        )

    def syntax_statement(self) -> D.Syntax:
        self.expect_word("syntax")
        self.expect(TokenKind.EQ)
        lit_tok = self.peek()
        lit = self.string()
        self.expect(TokenKind.SEMI)
        if lit not in _SYNTAXES:
            raise ParseError(
                span=lit_tok.span,
                message=f"unsupported syntax {lit!r}",
                hint='use: syntax = "proto3"; or syntax = "proto2";',
            )
        return _SYNTAXES[lit]

    def import_statement(self) -> D.Import:
        first = self.expect_word("import")
        modifier: str | None = None
        if self.at_word("public") or self.at_word("weak"):
            modifier = self.advance().lexeme
        path = self.string()
        self.expect(TokenKind.SEMI)
        return D.Import(path=path, modifier=modifier, annotation=self.annotate(first))

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------

    def message(self) -> D.MessageDecl:
        first = self.expect_word("message")
        name = self.ident("message name")
        return self.message_body(name, first)

    def message_body(self, name: str, first: Token) -> D.MessageDecl:
        """`{ ... }` of a message or group; `first` starts the annotation."""
        self.expect(TokenKind.LBRACE)

        fields: list[D.FieldDecl] = []
        messages: list[D.MessageDecl] = []
        enums: list[D.EnumDecl] = []
        oneofs: list[D.OneofDecl] = []
        reserved_numbers: list[D.NumberRange] = []
        reserved_names: list[str] = []
        extension_ranges: list[D.NumberRange] = []
        extends: list[D.ExtendDecl] = []
        options: list[tuple[str, D.OptionValue]] = []

        while not self.accept(TokenKind.RBRACE):
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                raise self.error(f"unterminated message {name!r}", hint="add closing }")
            if self.accept(TokenKind.SEMI):
                continue
            if self._starts_block("message"):
                messages.append(self.message())
            elif self._starts_block("enum"):
                enums.append(self.enum())
            elif self._starts_block("oneof"):
                oneofs.append(self.oneof())
            elif tok.is_word("option"):
                options.append(self.option_statement())
            elif tok.is_word("reserved") and self._at_reserved_body():
                nums, names = self.reserved(max_value=D.FIELD_NUMBER_MAX)
                reserved_numbers.extend(nums)
                reserved_names.extend(names)
            elif tok.is_word("extensions") and self.at(TokenKind.INT, 1):
                extension_ranges.extend(self.extensions())
            elif self._starts_extend():
                extends.append(self.extend())
            else:
                fields.append(self.field())

        return D.MessageDecl(
            name=name,
            fields=tuple(fields),
            messages=tuple(messages),
            enums=tuple(enums),
            oneofs=tuple(oneofs),
            reserved_numbers=tuple(reserved_numbers),
            reserved_names=tuple(reserved_names),
            extension_ranges=tuple(extension_ranges),
            extends=tuple(extends),
            options=tuple(options),
            annotation=self.annotate(first),
        )

    def _starts_extend(self) -> bool:
        # `extend Foo {` or `extend .a.Foo {`; `extend foo = 1;` is a field.
        if not self.at_word("extend"):
            return False
        j = 1
        if self.at(TokenKind.DOT, j):
            j += 1
        while self.at(TokenKind.IDENT, j) and self.at(TokenKind.DOT, j + 1):
            j += 2
        return self.at(TokenKind.IDENT, j) and self.at(TokenKind.LBRACE, j + 1)

    def extend(self) -> D.ExtendDecl:
        first = self.expect_word("extend")
        extendee = D.MessageRef(self.dotted_name(allow_absolute=True))
        self.expect(TokenKind.LBRACE)
        fields: list[D.FieldDecl] = []
        while not self.accept(TokenKind.RBRACE):
            if self.at(TokenKind.EOF):
                raise self.error(f"unterminated extend {extendee.name!r}", hint="add closing }")
            if self.accept(TokenKind.SEMI):
                continue
            fields.append(self.field())
        return D.ExtendDecl(extendee=extendee, fields=tuple(fields), annotation=self.annotate(first))

    def _starts_block(self, word: str) -> bool:
        return self.at_word(word) and self.at(TokenKind.IDENT, 1) and self.at(TokenKind.LBRACE, 2)

    def _at_reserved_body(self) -> bool:
        return self.at(TokenKind.INT, 1) or self.at(TokenKind.STRING, 1)

    def _at_label(self) -> bool:
        tok = self.peek()
        if tok.kind is not TokenKind.IDENT or tok.lexeme not in _LABELS:
            return False
        # `optional foo = 1;` declares a field of message type `optional`.
        if self.at(TokenKind.DOT, 1):
            return True
        return self.at(TokenKind.IDENT, 1) and not self.at(TokenKind.EQ, 2)

    def field_type(self) -> D.FieldType:
        if self.at_word("map") and self.at(TokenKind.LANGLE, 1):
            self.advance()
            self.advance()
            key = self.ident("map key type")
            self.expect(TokenKind.COMMA)
            value = self.value_type()
            self.expect(TokenKind.RANGLE, what="'>'")
            return D.MapType(key=D.ScalarType(key), value=value)
        return self.value_type()

    def value_type(self) -> D.ValueType:
        name = self.dotted_name(allow_absolute=True)
        if name in D.SCALAR_TYPES:
            return D.ScalarType(name)
        return D.MessageRef(name)

    def field(self, *, in_oneof: bool = False) -> D.FieldDecl:
        first = self.peek()
        cardinality: D.Cardinality | None = None
        if self._at_label():
            label_tok = self.advance()
            if in_oneof:
                raise ParseError(
                    span=label_tok.span,
                    message="fields in a oneof must not have labels",
                    hint=f"remove {label_tok.lexeme!r}",
                )
            cardinality = _LABELS[label_tok.lexeme]
        if self.at_word("group") and self.at(TokenKind.IDENT, 1) and self.at(TokenKind.EQ, 2):
            return self.group(first, cardinality)
        if not (self.at(TokenKind.IDENT) or self.at(TokenKind.DOT)):
            raise self.error("expected a field declaration")
        ftype = self.field_type()
        if isinstance(ftype, D.MapType) and cardinality is not None:
            raise ParseError(
                span=first.span,
                message="map fields cannot have labels",
                hint="remove the label (map fields are implicitly repeated)",
            )
        name = self.ident("field name")
        self.expect(TokenKind.EQ)
        number = self.integer("field number")
        default_value, json_name, options = self.field_options(name)
        self.expect(TokenKind.SEMI)

        return D.FieldDecl(
            name=name,
            number=number,
            type=ftype,
            cardinality=cardinality,
            default_value=default_value,
            json_name=json_name,
            options=options,
            annotation=self.annotate(first),
        )

    def group(self, first: Token, cardinality: D.Cardinality | None) -> D.FieldDecl:
        self.expect_word("group")
        name = self.ident("group name")
        self.expect(TokenKind.EQ)
        number = self.integer("field number")
        field_name = name.lower()
        default_value, json_name, options = self.field_options(field_name)
        body = self.message_body(name, first)
        return D.FieldDecl(
            name=field_name,
            number=number,
            type=D.GroupType(body),
            cardinality=cardinality,
            default_value=default_value,
            json_name=json_name,
            options=options,
            annotation=self.annotate(first),
        )

    def field_options(self, name: str) -> tuple[D.OptionValue | None, str | None, D.Options]:
        """Optional `[...]` after a field number, with default and json_name split out."""
        default_value: D.OptionValue | None = None
        json_name: str | None = None
        options: list[tuple[str, D.OptionValue]] = []
        if not self.at(TokenKind.LBRACKET):
            return default_value, json_name, ()
        opt_tok = self.peek()
        for key, value in self.options_block():
            if key == "default":
                if default_value is not None:
                    raise ParseError(span=opt_tok.span, message=f"duplicate default for field {name!r}")
                default_value = value
            elif key == "json_name":
                if json_name is not None:
                    raise ParseError(span=opt_tok.span, message=f"duplicate json_name for field {name!r}")
                if not isinstance(value, str):
                    raise ParseError(span=opt_tok.span, message="json_name must be a string")
                json_name = value
            else:
                options.append((key, value))
        return default_value, json_name, tuple(options)

    def oneof(self) -> D.OneofDecl:
        first = self.expect_word("oneof")
        name = self.ident("oneof name")
        self.expect(TokenKind.LBRACE)
        fields: list[D.FieldDecl] = []
        options: list[tuple[str, D.OptionValue]] = []
        while not self.accept(TokenKind.RBRACE):
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                raise self.error(f"unterminated oneof {name!r}", hint="add closing }")
            if self.accept(TokenKind.SEMI):
                continue
            if tok.is_word("option"):
                options.append(self.option_statement())
                continue
            f = self.field(in_oneof=True)
            if isinstance(f.type, D.MapType):
                raise ParseError(span=tok.span, message="map fields are not allowed in a oneof")
            fields.append(f)
        return D.OneofDecl(name=name, fields=tuple(fields), options=tuple(options), annotation=self.annotate(first))

    def number_range(self, *, max_value: int) -> D.NumberRange:
        start = self.integer("range start")
        if not self.at_word("to"):
            return D.NumberRange(start, start)
        self.advance()
        if self.at_word("max"):
            self.advance()
            return D.NumberRange(start, max_value)
        return D.NumberRange(start, self.integer("range end or 'max'"))

    def reserved(self, *, max_value: int) -> tuple[list[D.NumberRange], list[str]]:
        self.expect_word("reserved")
        numbers: list[D.NumberRange] = []
        names: list[str] = []
        if self.at(TokenKind.STRING):
            names.append(self.string())
            while self.accept(TokenKind.COMMA):
                names.append(self.string())
        else:
            numbers.append(self.number_range(max_value=max_value))
            while self.accept(TokenKind.COMMA):
                numbers.append(self.number_range(max_value=max_value))
        self.expect(TokenKind.SEMI, what="';'")
        return numbers, names

    def extensions(self) -> list[D.NumberRange]:
        self.expect_word("extensions")
        out = [self.number_range(max_value=D.FIELD_NUMBER_MAX)]
        while self.accept(TokenKind.COMMA):
            out.append(self.number_range(max_value=D.FIELD_NUMBER_MAX))
        if self.at(TokenKind.LBRACKET):
            raise self.error("options on extension ranges are not supported")
        self.expect(TokenKind.SEMI, what="';'")
        return out

    # -----------------------------------------------------------------------
    # Enums
    # -----------------------------------------------------------------------

    def enum(self) -> D.EnumDecl:
        first = self.expect_word("enum")
        name = self.ident("enum name")
        self.expect(TokenKind.LBRACE)
        values: list[D.EnumValueDecl] = []
        reserved_numbers: list[D.NumberRange] = []
        reserved_names: list[str] = []
        options: list[tuple[str, D.OptionValue]] = []
        allow_alias: bool | None = None

        while not self.accept(TokenKind.RBRACE):
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                raise self.error(f"unterminated enum {name!r}", hint="add closing }")
            if self.accept(TokenKind.SEMI):
                continue
            if tok.is_word("option") and not self.at(TokenKind.EQ, 1):
                key, value = self.option_statement()
                if key == "allow_alias":
                    if not isinstance(value, bool):
                        raise ParseError(span=tok.span, message="allow_alias must be true or false")
                    if allow_alias is not None:
                        raise ParseError(span=tok.span, message=f"duplicate allow_alias in enum {name!r}")
                    allow_alias = value
                else:
                    options.append((key, value))
            elif tok.is_word("reserved") and self._at_reserved_body():
                nums, names = self.reserved(max_value=D.ENUM_NUMBER_MAX)
                reserved_numbers.extend(nums)
                reserved_names.extend(names)
            else:
                values.append(self.enum_value())

        return D.EnumDecl(
            name=name,
            values=tuple(values),
            allow_alias=bool(allow_alias),
            reserved_numbers=tuple(reserved_numbers),
            reserved_names=tuple(reserved_names),
            options=tuple(options),
            annotation=self.annotate(first),
        )

    def enum_value(self) -> D.EnumValueDecl:
        first = self.peek()
        name = self.ident("enum value name")
        self.expect(TokenKind.EQ)
        number = self.integer("enum value number")
        options: list[tuple[str, D.OptionValue]] = []
        if self.at(TokenKind.LBRACKET):
            options = self.options_block()
        self.expect(TokenKind.SEMI)
        return D.EnumValueDecl(name=name, number=number, options=tuple(options), annotation=self.annotate(first))

    # -----------------------------------------------------------------------
    # Services
    # -----------------------------------------------------------------------

    def service(self) -> D.ServiceDecl:
        first = self.expect_word("service")
        name = self.ident("service name")
        self.expect(TokenKind.LBRACE)
        methods: list[D.MethodDecl] = []
        options: list[tuple[str, D.OptionValue]] = []
        while not self.accept(TokenKind.RBRACE):
            tok = self.peek()
            if tok.kind is TokenKind.EOF:
                raise self.error(f"unterminated service {name!r}", hint="add closing }")
            if self.accept(TokenKind.SEMI):
                continue
            if tok.is_word("option"):
                options.append(self.option_statement())
            elif tok.is_word("rpc"):
                methods.append(self.rpc())
            else:
                raise self.error("unexpected token in service", hint="expected one of: rpc, option, }")
        return D.ServiceDecl(name=name, methods=tuple(methods), options=tuple(options), annotation=self.annotate(first))

    def rpc_type(self) -> tuple[bool, D.MessageRef]:
        self.expect(TokenKind.LPAREN)
        # `(stream)` names a message called stream; `(stream Foo)` and `(stream .a.Foo)` stream.
        stream = False
        if self.at_word("stream") and not self.at(TokenKind.RPAREN, 1):
            self.advance()
            stream = True
        ref = D.MessageRef(self.dotted_name(allow_absolute=True))
        self.expect(TokenKind.RPAREN)
        return stream, ref

    def rpc(self) -> D.MethodDecl:
        first = self.expect_word("rpc")
        name = self.ident("method name")
        client_streaming, input_type = self.rpc_type()
        self.expect_word("returns")
        server_streaming, output_type = self.rpc_type()
        options: list[tuple[str, D.OptionValue]] = []
        if self.accept(TokenKind.LBRACE):
            while not self.accept(TokenKind.RBRACE):
                if self.at(TokenKind.EOF):
                    raise self.error(f"unterminated rpc {name!r}", hint="add closing }")
                if self.accept(TokenKind.SEMI):
                    continue
                options.append(self.option_statement())
        else:
            self.expect(TokenKind.SEMI, what="';' or '{'")
        return D.MethodDecl(
            name=name,
            input_type=input_type,
            output_type=output_type,
            client_streaming=client_streaming,
            server_streaming=server_streaming,
            options=tuple(options),
            annotation=self.annotate(first),
        )
