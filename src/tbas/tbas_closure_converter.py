"""Closure conversion and currying for TBAS lambda bodies."""

from typing import Callable, List, Tuple

from tbas.tbas_ast import (
    TBASASTNode, TBASASTNumber, TBASASTIdent, TBASASTOp, TBASASTCall, TBASASTArray, TBASASTLambda,
    TBASASTArgRef, TBASASTIf, TBASASTOn, TBASASTDefun, TBASASTValue
)
from tbas.tbas_error import TBASBadFunctionCallError
from tbas.tbas_value import TBASClosure, TBASValue


def map_children(node: TBASASTNode, transform: Callable[[TBASASTNode], TBASASTNode]) -> TBASASTNode:
    """
    Rebuild a node with each child transformed.

    Lambda bodies are not visited; callers that need to descend into them handle TBASASTLambda
    themselves. The original node is returned when no child changed.
    """
    if isinstance(node, TBASASTOp):
        operands = tuple(transform(operand) for operand in node.operands)
        if all(new is old for new, old in zip(operands, node.operands)):
            return node

        return TBASASTOp(node.op, operands, column=node.column)

    if isinstance(node, TBASASTCall):
        target = node.target if isinstance(node.target, str) else transform(node.target)
        args = tuple(transform(arg) for arg in node.args)
        if target is node.target and all(new is old for new, old in zip(args, node.args)):
            return node

        return TBASASTCall(target, args, node.separators, column=node.column)

    if isinstance(node, TBASASTArray):
        elements = tuple(transform(element) for element in node.elements)
        if all(new is old for new, old in zip(elements, node.elements)):
            return node

        return TBASASTArray(elements, column=node.column)

    if isinstance(node, TBASASTIf):
        condition = transform(node.condition)
        then_branch = transform(node.then_branch)
        else_branch = None if node.else_branch is None else transform(node.else_branch)
        if condition is node.condition and then_branch is node.then_branch and else_branch is node.else_branch:
            return node

        return TBASASTIf(condition, then_branch, else_branch, column=node.column)

    if isinstance(node, TBASASTOn):
        test = transform(node.test)
        targets = tuple(transform(target) for target in node.targets)
        if test is node.test and all(new is old for new, old in zip(targets, node.targets)):
            return node

        return TBASASTOn(node.kind, test, targets, column=node.column)

    return node


class TBASClosureConverter:
    """
    Rewrites lambda parameter names into (depth, index) references.

    A reference's depth counts the lambdas between the use site and its binder, so 0 names the
    innermost enclosing lambda.
    """

    def __init__(self) -> None:
        self._binders: List[Tuple[str, ...]] = []

    def prune(self, node: TBASASTNode | None) -> TBASASTNode | None:
        """
        Convert one parsed statement.

        Args:
            node: Statement tree from the parser, or None for a REM statement

        Returns:
            A converted tree; unchanged subtrees are shared with the input
        """
        if node is None:
            return None

        self._binders = []
        return self._convert(node)

    def _lookup(self, name: str) -> TBASASTArgRef | None:
        for depth, frame in enumerate(reversed(self._binders)):
            if name in frame:
                return TBASASTArgRef(depth, frame.index(name))

        return None

    def _convert(self, node: TBASASTNode) -> TBASASTNode:
        if isinstance(node, TBASASTDefun):
            lambda_node = TBASASTLambda(node.params, node.body, column=node.column)
            target = TBASASTIdent(node.name, column=node.column)
            return TBASASTOp("=", (target, self._convert(lambda_node)), column=node.column)

        if isinstance(node, TBASASTLambda):
            self._binders.append(node.params.names)
            try:
                body = self._convert(node.body)

            finally:
                self._binders.pop()

            if body is node.body:
                return node

            return TBASASTLambda(node.params, body, column=node.column)

        if isinstance(node, TBASASTIdent):
            return self._lookup(node.name) or node

        if isinstance(node, TBASASTCall) and isinstance(node.target, str):
            reference = self._lookup(node.target)
            if reference is not None:
                args = tuple(self._convert(arg) for arg in node.args)
                return TBASASTCall(reference, args, node.separators, column=node.column)

        if isinstance(node, TBASASTOp) and node.op in ("UNARYMINUS", "UNARYPLUS"):
            operand = self._convert(node.operands[0])
            if isinstance(operand, TBASASTNumber):
                value = -operand.value if node.op == "UNARYMINUS" else operand.value
                return TBASASTNumber(value, column=node.column)

            if operand is node.operands[0]:
                return node

            return TBASASTOp(node.op, (operand,), column=node.column)

        return map_children(node, self._convert)

    def curry(self, closure: TBASClosure, value: TBASValue) -> TBASClosure:
        """
        Fix a closure's first parameter.

        Args:
            closure: The closure to apply partially; it is never modified
            value: Value bound to parameter 0

        Returns:
            A new closure taking one parameter fewer

        Raises:
            TBASBadFunctionCallError: If the closure takes no parameters
        """
        if closure.arity == 0:
            raise TBASBadFunctionCallError(
                "cannot curry a function with no parameters",
                received=closure.describe()
            )

        body = self._substitute(closure.body, 0, value)
        return TBASClosure(closure.arity - 1, body, closure.captured, closure.name)

    def _substitute(self, node: TBASASTNode, level: int, value: TBASValue) -> TBASASTNode:
        if isinstance(node, TBASASTArgRef):
            if node.depth != level:
                return node

            if node.index == 0:
                return TBASASTValue(value, column=node.column)

            return TBASASTArgRef(node.depth, node.index - 1, column=node.column)

        if isinstance(node, TBASASTLambda):
            body = self._substitute(node.body, level + 1, value)
            if body is node.body:
                return node

            return TBASASTLambda(node.params, body, column=node.column)

        return map_children(node, lambda child: self._substitute(child, level, value))
