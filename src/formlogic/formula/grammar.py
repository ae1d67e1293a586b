"""Lark grammar definition for calculated-field formulas.

This grammar supports:
- Arithmetic: +, -, *, / and ^ (power, right-associative)
- Unary minus (there is no unary plus, so "5 + + 3" is rejected)
- Comparison: =, ==, !=, <>, <, >, <=, >=
- Field references: {{fieldId}}
- Function calls: FUNCTION(arg1, arg2, ...)
- Literals: decimal numbers, TRUE / FALSE
"""

# Lark grammar for formula parsing
FORMULA_GRAMMAR = r"""
    ?start: expression

    ?expression: comparison

    ?comparison: additive
        | additive "=" additive -> eq
        | additive "==" additive -> eq
        | additive "!=" additive -> ne
        | additive "<>" additive -> ne
        | additive "<" additive -> lt
        | additive ">" additive -> gt
        | additive "<=" additive -> le
        | additive ">=" additive -> ge

    ?additive: multiplicative
        | additive "+" multiplicative -> add
        | additive "-" multiplicative -> sub

    ?multiplicative: unary
        | multiplicative "*" unary -> mul
        | multiplicative "/" unary -> div

    ?unary: power
        | "-" unary -> neg

    ?power: atom
        | atom "^" unary -> pow

    ?atom: NUMBER -> number
        | BOOLEAN -> boolean
        | FIELD_REF -> field_ref
        | function_call
        | "(" expression ")"

    function_call: FUNCTION_NAME "(" [arguments] ")"

    arguments: expression ("," expression)*

    // Boolean literals (must come before FUNCTION_NAME for priority)
    BOOLEAN.2: /(?:TRUE|FALSE)(?![A-Za-z0-9_])/i

    // Field reference: {{fieldId}}, surrounding whitespace inside the braces is ignored
    FIELD_REF.1: /\{\{\s*[^{}\s][^{}]*\}\}/

    // Function names (case-insensitive) - lower priority
    FUNCTION_NAME: /(?!(?:TRUE|FALSE)(?![A-Za-z0-9_]))[A-Za-z_][A-Za-z0-9_]*/i

    // Number literals (integer or decimal, with optional scientific notation)
    // Note: negative sign is handled by unary operator, not here
    NUMBER: /(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?/

    // Whitespace handling
    %import common.WS
    %ignore WS
"""
