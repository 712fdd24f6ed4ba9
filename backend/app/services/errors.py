# service-level exceptions
# raised by stores, the plan codec, the generator and the wizard; routers map them to http errors


class StoreUnavailable(Exception):
    """primary store call failed (network, server selection, timeout)"""


class RecordNotFound(Exception):
    """no record with the given id in either store"""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record not found: {record_id}")
        self.collection = collection
        self.record_id = record_id


class MalformedPlanData(Exception):
    """stored plan blob is not valid json or does not match the plan schema"""


class GenerationFailed(Exception):
    """the generation capability errored or returned an unusable object"""


class InvalidTransition(Exception):
    """a wizard or session action is not valid in the current state"""


class MissingRequiredFields(Exception):
    """generation was requested before all required fields were collected"""

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields
