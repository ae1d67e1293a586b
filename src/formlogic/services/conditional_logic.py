"""Conditional logic service for show/skip rules.

Decides which fields a respondent sees, where skip rules send them, and
validates conditional logic configuration before it is stored.
"""

from typing import Any, Mapping, Optional

from formlogic.core.exceptions import FieldNotFoundError, FormNotFoundError
from formlogic.core.logging import LoggerMixin
from formlogic.logic.conditions import evaluate_condition_group
from formlogic.schemas.field import (
    ConditionalLogic,
    ConditionGroup,
    FormField,
    load_fields,
)
from formlogic.schemas.results import (
    ConditionEvaluation,
    EvaluationDetails,
    FieldState,
    FormFlowSimulation,
    FormLogicState,
    SkipAction,
    ValidationResult,
)


def _ordered(fields: list[FormField]) -> list[FormField]:
    """Fields by display order; ties keep their stored position."""
    return sorted(fields, key=lambda f: f.order)


class ConditionalLogicService(LoggerMixin):
    """Service for evaluating and validating show/skip logic."""

    # ==========================================================================
    # Evaluation
    # ==========================================================================

    def evaluate_conditions(
        self,
        form: Any,
        field_id: str,
        responses: Mapping[str, Any],
    ) -> ConditionEvaluation:
        """
        Evaluate the show and skip groups of one field.

        Args:
            form: Form, form dict or list of fields
            field_id: ID of the field to evaluate
            responses: Field ID -> raw response value

        Returns:
            ConditionEvaluation with per-condition details

        Raises:
            FormNotFoundError: form is None
            FieldNotFoundError: No field with this ID
        """
        field = self._get_field(self._load_form(form), field_id)
        return self._evaluate_field(field, responses)

    def _evaluate_field(
        self, field: FormField, responses: Mapping[str, Any]
    ) -> ConditionEvaluation:
        show = evaluate_condition_group(field.conditional.show, responses)
        skip = evaluate_condition_group(field.conditional.skip, responses)

        should_skip = skip.enabled and skip.met
        return ConditionEvaluation(
            should_show=show.met,
            should_skip=should_skip,
            skip_target=field.conditional.skip.target_field_id if should_skip else None,
            evaluation_details=EvaluationDetails(
                show_conditions=show,
                skip_conditions=skip,
            ),
        )

    def get_visible_fields(self, form: Any, responses: Mapping[str, Any]) -> list[FormField]:
        """
        Fields a respondent sees, in display order.

        A field is visible when its show group passes and its skip group
        does not. Each field is judged on the raw responses alone.
        """
        visible = []
        for field in _ordered(self._load_form(form)):
            evaluation = self._evaluate_field(field, responses)
            if evaluation.should_show and not evaluation.should_skip:
                visible.append(field)
        return visible

    def evaluate_form_logic(self, form: Any, responses: Mapping[str, Any]) -> FormLogicState:
        """
        Visibility and skip state of every field, with a readable reason.

        Args:
            form: Form, form dict or list of fields
            responses: Field ID -> raw response value

        Returns:
            FormLogicState keyed by field ID
        """
        visible_fields: list[str] = []
        hidden_fields: list[str] = []
        skip_targets: dict[str, str] = {}
        field_states: dict[str, FieldState] = {}

        for field in _ordered(self._load_form(form)):
            evaluation = self._evaluate_field(field, responses)
            visible = evaluation.should_show and not evaluation.should_skip

            (visible_fields if visible else hidden_fields).append(field.id)
            if evaluation.skip_target:
                skip_targets[field.id] = evaluation.skip_target

            field_states[field.id] = FieldState(
                visible=visible,
                skip_to=evaluation.skip_target,
                reason=self._reason(field, evaluation, visible),
            )

        return FormLogicState(
            visible_fields=visible_fields,
            hidden_fields=hidden_fields,
            skip_targets=skip_targets,
            field_states=field_states,
        )

    @staticmethod
    def _reason(field: FormField, evaluation: ConditionEvaluation, visible: bool) -> str:
        reasons = []
        if not evaluation.should_show and field.conditional.show.enabled:
            reasons.append("Hidden by show conditions")
        if evaluation.should_skip:
            if evaluation.skip_target:
                reasons.append(f"Skip to field {evaluation.skip_target}")
            else:
                reasons.append("Skipped by skip conditions")

        if not reasons:
            return "Visible by default" if visible else "Hidden by default"
        return ", ".join(reasons)

    def get_next_visible_fields(
        self,
        form: Any,
        responses: Mapping[str, Any],
        current_field_id: str,
    ) -> list[str]:
        """
        The field a respondent moves to after the current one.

        Met skip rules with a target further down the form jump straight to
        it; hidden fields are passed over.

        Returns:
            [next_field_id], or [] at the end of the form

        Raises:
            FieldNotFoundError: current_field_id is not in the form
        """
        fields = _ordered(self._load_form(form))
        positions = {f.id: i for i, f in enumerate(fields)}
        if current_field_id not in positions:
            raise FieldNotFoundError(current_field_id)

        index = positions[current_field_id]
        current = self._evaluate_field(fields[index], responses)
        index = self._jump(current, positions, index)

        while index < len(fields):
            evaluation = self._evaluate_field(fields[index], responses)
            if evaluation.should_show and not evaluation.should_skip:
                return [fields[index].id]
            index = self._jump(evaluation, positions, index)
        return []

    def simulate_form_flow(
        self, form: Any, responses: Mapping[str, Any]
    ) -> FormFlowSimulation:
        """
        Walk the form with hypothetical responses.

        Returns:
            FormFlowSimulation with the fields visited and the skips taken
        """
        fields = _ordered(self._load_form(form))
        positions = {f.id: i for i, f in enumerate(fields)}
        state = self.evaluate_form_logic(fields, responses)

        flow_path: list[str] = []
        skip_actions: list[SkipAction] = []
        index = 0
        while index < len(fields):
            field = fields[index]
            target = state.skip_targets.get(field.id)
            if field.id in state.visible_fields:
                flow_path.append(field.id)
            elif target is not None and positions.get(target, -1) > index:
                skip_actions.append(
                    SkipAction(from_field=field.id, to_field=target, reason="Skip condition met")
                )
                index = positions[target]
                continue
            index += 1

        return FormFlowSimulation(
            flow_path=flow_path,
            visible_fields=state.visible_fields,
            hidden_fields=state.hidden_fields,
            skip_actions=skip_actions,
        )

    @staticmethod
    def _jump(evaluation: ConditionEvaluation, positions: dict[str, int], index: int) -> int:
        """Next index to look at; met skips only ever move forward."""
        target = evaluation.skip_target
        if evaluation.should_skip and target is not None and positions.get(target, -1) > index:
            return positions[target]
        return index + 1

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate_conditional_logic(
        self,
        logic: Any,
        fields: Any,
        owner_field_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate the show and skip groups of one field.

        Args:
            logic: ConditionalLogic, a {"show", "skip"} dict, or a single
                condition group (treated as the show group)
            fields: Fields of the form
            owner_field_id: Field that owns the logic; enables the
                self-reference and forward-reference checks

        Returns:
            ValidationResult; forward references are warnings
        """
        logic = self._load_logic(logic)
        field_list = _ordered(load_fields(fields))
        positions = {f.id: i for i, f in enumerate(field_list)}
        owner_position = positions.get(owner_field_id) if owner_field_id else None

        errors: list[str] = []
        warnings: list[str] = []

        for group in (logic.show, logic.skip):
            if not group.enabled:
                continue
            if not group.conditions:
                errors.append("At least one condition is required when conditional logic is enabled")

            for condition in group.conditions:
                ref = condition.field_id
                if ref not in positions:
                    errors.append(f'Referenced field "{ref}" does not exist')
                elif ref == owner_field_id:
                    errors.append("Circular reference detected: field cannot reference itself")
                elif owner_position is not None and positions[ref] > owner_position:
                    warnings.append(
                        f'Condition references field "{ref}" which comes later in the form'
                    )

        target = logic.skip.target_field_id
        if logic.skip.enabled and target and target not in positions:
            errors.append(f'Skip target field "{target}" does not exist')

        errors = list(dict.fromkeys(errors))
        warnings = list(dict.fromkeys(warnings))
        if errors:
            self.logger.warning(
                "Rejected conditional logic",
                extra={"field_id": owner_field_id, "errors": errors},
            )
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def validate_form_logic(self, form: Any) -> ValidationResult:
        """Validate the conditional logic of every field in a form."""
        fields = self._load_form(form)
        errors: list[str] = []
        warnings: list[str] = []
        for field in fields:
            result = self.validate_conditional_logic(field.conditional, fields, field.id)
            errors.extend(f"Field {field.id}: {e}" for e in result.errors)
            warnings.extend(f"Field {field.id}: {w}" for w in result.warnings)
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _load_form(form: Any) -> list[FormField]:
        if form is None:
            raise FormNotFoundError()
        return load_fields(form)

    @staticmethod
    def _get_field(fields: list[FormField], field_id: str) -> FormField:
        for field in fields:
            if field.id == field_id:
                return field
        raise FieldNotFoundError(field_id)

    @staticmethod
    def _load_logic(logic: Any) -> ConditionalLogic:
        if isinstance(logic, ConditionalLogic):
            return logic
        if isinstance(logic, ConditionGroup):
            return ConditionalLogic(show=logic)
        if logic is None:
            return ConditionalLogic()
        if "show" in logic or "skip" in logic:
            return ConditionalLogic.model_validate(logic)
        return ConditionalLogic(show=ConditionGroup.model_validate(logic))


# Singleton instance for app-wide use
_conditional_logic_service: ConditionalLogicService | None = None


def get_conditional_logic_service() -> ConditionalLogicService:
    """Get or create conditional logic service singleton."""
    global _conditional_logic_service
    if _conditional_logic_service is None:
        _conditional_logic_service = ConditionalLogicService()
    return _conditional_logic_service
