# src/cksim_core/validation/issue_codes.py
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class SnapshotIssueCode(Enum):
    """
    Registry of snapshot validation issue codes and their message templates.
    Each member's value is a tuple: (code_str, message_template_str).
    """

    # --- Element identity and wiring (ELEM_...) ---
    ELEM_DUP_ID = ("ELEM_DUP_ID", "Element id '{element_id}' is used by {count} elements.")
    ELEM_TYPE_UNSUPPORTED = ("ELEM_TYPE_UNSUPPORTED", "Element '{element_id}' has unsupported type '{element_type}'. Available types: {available_types}.")
    ELEM_SELF_LOOP = ("ELEM_SELF_LOOP", "Element '{element_id}' connects node '{node}' to itself and can never carry current.")

    # --- Parameter values (PARAM_...) ---
    PARAM_NEGATIVE = ("PARAM_NEGATIVE", "Element '{element_id}' has a negative {parameter_name} ({value}).")
    PARAM_NON_POSITIVE = ("PARAM_NON_POSITIVE", "Element '{element_id}' requires a positive {parameter_name}, got {value}.")
    PARAM_NOT_FINITE = ("PARAM_NOT_FINITE", "Element '{element_id}' has a non-finite {parameter_name} ({value}).")

    # --- Node connectivity (NODE_...) ---
    NODE_DANGLING = ("NODE_DANGLING", "Node '{node}' is connected only to element '{element_id}'.")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def template(self) -> str:
        return self.value[1]

    def format_message(self, **kwargs) -> str:
        """Formats the message template with provided keyword arguments."""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing key {e} for formatting message template of {self.name}: '{self.template}'. Provided args: {kwargs}")
            return f"Error formatting message for {self.code}: Missing key {e}. Template: '{self.template}' Args: {kwargs}"
