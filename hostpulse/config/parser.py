"""
Recursive descent parser for the nginx-like configuration syntax.

Grammar:
    document  := item*
    item      := include | block | directive
    block     := IDENTIFIER [STRING] '{' item* '}'
    directive := IDENTIFIER value* ';'
    value     := STRING | NUMBER | DURATION | BOOLEAN | IDENTIFIER
    include   := 'include' STRING ';'
"""

import glob
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .lexer import Lexer, Token, TokenType

VALUE_TOKENS = (
    TokenType.STRING,
    TokenType.NUMBER,
    TokenType.DURATION,
    TokenType.BOOLEAN,
    TokenType.IDENTIFIER,
)


class ParseError(Exception):
    """Exception raised for parser errors."""

    def __init__(self, message: str, token: Token | None = None):
        self.token = token
        if token:
            super().__init__(f"Line {token.line}, column {token.column}: {message}")
        else:
            super().__init__(message)


@dataclass
class Directive:
    """
    A directive with a name and zero or more values.

    Examples:
        port 1883;            -> Directive("port", [1883])
        settle_interval 1s;   -> Directive("settle_interval", [1.0])
    """

    name: str
    values: list[Any] = field(default_factory=list)
    line: int = 0
    column: int = 0

    @property
    def value(self) -> Any:
        """First value, or None."""
        return self.values[0] if self.values else None


@dataclass
class Block:
    """A block with a type, optional name, nested directives and blocks."""

    type: str
    name: str | None = None
    directives: list[Directive] = field(default_factory=list)
    blocks: list["Block"] = field(default_factory=list)
    line: int = 0
    column: int = 0

    def get_directive(self, name: str) -> Directive | None:
        """Get the last directive with the given name (later ones override)."""
        found = None
        for directive in self.directives:
            if directive.name == name:
                found = directive
        return found

    def get_value(self, name: str, default: Any = None) -> Any:
        """Get the value of a directive, or default if absent."""
        directive = self.get_directive(name)
        if directive is None or directive.value is None:
            return default
        return directive.value

    def get_all_values(self, name: str) -> list[Any]:
        """
        Get values of a repeatable directive.

            disk_exclude_fstype "squashfs";
            disk_exclude_fstype "overlay" "tmpfs";
        gives ["squashfs", "overlay", "tmpfs"].
        """
        values: list[Any] = []
        for directive in self.directives:
            if directive.name == name:
                values.extend(directive.values)
        return values

    def get_block(self, type_name: str) -> "Block | None":
        """Get the first nested block with the given type."""
        for block in self.blocks:
            if block.type == type_name:
                return block
        return None


@dataclass
class ConfigDocument:
    """Root of a parsed configuration: a top-level Block plus its filename."""

    root: Block = field(default_factory=lambda: Block(type="<root>"))
    filename: str = "<string>"

    @property
    def blocks(self) -> list[Block]:
        return self.root.blocks

    @property
    def directives(self) -> list[Directive]:
        return self.root.directives

    def get_block(self, type_name: str) -> Block | None:
        """Get the first top-level block with the given type."""
        return self.root.get_block(type_name)


class ConfigParser:
    """Parser turning lexer tokens into a ConfigDocument."""

    def __init__(
        self,
        source: str,
        filename: str = "<string>",
        base_path: Path | None = None,
        included_files: frozenset[str] = frozenset(),
    ):
        self.lexer = Lexer(source, filename)
        self.filename = filename
        self.base_path = base_path or Path.cwd()
        self.included_files = included_files
        self.token = self.lexer.next_token()

    def _advance(self) -> Token:
        current = self.token
        self.token = self.lexer.next_token()
        return current

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if self.token.type != token_type:
            raise ParseError(message, self.token)
        return self._advance()

    def parse(self) -> ConfigDocument:
        """Parse the whole document."""
        root = Block(type="<root>")
        self._parse_items(root, closing=TokenType.EOF)
        return ConfigDocument(root=root, filename=self.filename)

    def _parse_items(self, parent: Block, closing: TokenType) -> None:
        """Parse items into parent until the closing token is reached."""
        while self.token.type != closing:
            if self.token.type == TokenType.INCLUDE:
                included = self._parse_include()
                parent.directives.extend(included.directives)
                parent.blocks.extend(included.blocks)
            elif self.token.type == TokenType.IDENTIFIER:
                self._parse_statement(parent)
            elif self.token.type == TokenType.EOF:
                raise ParseError(f"Expected '}}' to close '{parent.type}' block", self.token)
            else:
                raise ParseError(
                    f"Expected block, directive or include; got {self.token.type.name}",
                    self.token,
                )

    def _parse_statement(self, parent: Block) -> None:
        """Parse either a block or a directive and attach it to parent."""
        name_token = self._advance()
        name = str(name_token.value)

        values: list[Any] = []
        while self.token.type in VALUE_TOKENS:
            values.append(self._advance().value)

        if self.token.type == TokenType.SEMICOLON:
            self._advance()
            parent.directives.append(
                Directive(name, values, line=name_token.line, column=name_token.column)
            )
            return

        if self.token.type != TokenType.LBRACE:
            raise ParseError(f"Expected '{{' or ';' after '{name}'", self.token)

        if len(values) > 1 or (values and not isinstance(values[0], str)):
            raise ParseError(f"Block '{name}' takes at most one string name", self.token)

        self._advance()  # {
        block = Block(
            type=name,
            name=values[0] if values else None,
            line=name_token.line,
            column=name_token.column,
        )
        self._parse_items(block, closing=TokenType.RBRACE)
        self._advance()  # }
        parent.blocks.append(block)

    def _parse_include(self) -> Block:
        """Parse an include statement and return the merged included content."""
        include_token = self._advance()
        path_token = self._expect(TokenType.STRING, "Expected file path after 'include'")
        self._expect(TokenType.SEMICOLON, "Expected ';' after include path")

        pattern = Path(str(path_token.value))
        if not pattern.is_absolute():
            pattern = self.base_path / pattern

        merged = Block(type="<include>")
        # No match is not an error (conf.d style includes)
        for path in sorted(glob.glob(str(pattern))):
            resolved = str(Path(path).resolve())
            if resolved in self.included_files:
                raise ParseError(f"Circular include detected: {path}", include_token)

            parser = ConfigParser(
                Path(path).read_text(),
                filename=path,
                base_path=Path(path).parent,
                included_files=self.included_files | {resolved},
            )
            document = parser.parse()
            merged.directives.extend(document.directives)
            merged.blocks.extend(document.blocks)

        return merged


def parse_config(
    source: str,
    filename: str = "<string>",
    base_path: Path | None = None,
) -> ConfigDocument:
    """
    Parse a configuration string.

    Args:
        source: Configuration text
        filename: Filename for error messages
        base_path: Directory used to resolve relative includes

    Returns:
        Parsed ConfigDocument
    """
    return ConfigParser(source, filename, base_path).parse()


def parse_config_file(path: str | Path) -> ConfigDocument:
    """Parse a configuration file (includes resolve relative to it)."""
    path = Path(path)
    return ConfigParser(
        path.read_text(),
        filename=str(path),
        base_path=path.parent,
        included_files=frozenset({str(path.resolve())}),
    ).parse()
