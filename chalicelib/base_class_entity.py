from datetime import datetime
from typing import Tuple, Dict, List, Any, Optional

from chalicelib.constants.substitute_keys import from_db, to_db
from chalicelib.utils import db as utils_db, exceptions
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


class EntityBase:
    pk = None
    sk = None

    required_immutable_fields_validation = {}
    required_mutable_fields_validation = {}
    optional_fields_validation = {}

    def __init__(self, id_):
        self.id_: str = id_
        self.record_type: str = ''
        self.request_data: Any[Dict, None] = None
        self.db_record: dict = {}

    def _get_pk_sk(self) -> Tuple[str, str]:
        """
        Should be re-implemented in each child class
        :return:
        partkey, sortkey of db item for child
        """
        return self.pk, self.sk

    def _get_db_item(self) -> Dict:
        return utils_db.get_db_item(*self._get_pk_sk())

    def _to_dict(self) -> Dict:
        """
        Should be re-implemented in each child class
        :return:
        dict of item's attributes
        """
        return {
            'id_': self.id_,
            'record_type': self.record_type
        }

    def _init_db_record(self) -> None:
        """
        New DB record initialization
        :return:
        None
        """
        pk, sk = self._get_pk_sk()
        self.db_record = {
            'partkey': pk,
            'sortkey': sk,
            'record_type': self.record_type,
            **self._to_dict()
        }
        substitute_keys(dict_to_process=self.db_record, base_keys=to_db)
        self.db_record = {key: value for key, value in self.db_record.items() if value is not None}

    @staticmethod
    def raise_validation_error(key):
        message = f'Validation error occurred while validating field={key}'
        logger.error(f"raise_validation_error ::: {message}")
        raise exceptions.ValidationException(message)

    def _validate_mandatory_fields(self):
        """
        Validates mandatory fields if all fields have correct type to put to db
        Raise ValidationException in case if a field is not valid
        :return:
        None
        """
        for key, validator_func in {
            **self.required_immutable_fields_validation,
            **self.required_mutable_fields_validation
        }.items():
            if validator_func(self.db_record.get(key)) is False:
                self.raise_validation_error(key)

    def _validate_optional_fields(self):
        """
        Validates optional fields if all fields have correct type to put to db
        Raise ValidationException in case if a field is not valid
        :return:
        None
        """
        for key, validator_func in self.optional_fields_validation.items():
            if self.db_record.get(key) is not None and validator_func(self.db_record.get(key)) is False:
                self.raise_validation_error(key)

    def _get_validated_update_dict(self) -> Dict:
        """
        Validates fields for update
        Delete field if it is not valid
        :return:
        Clean dict for update
        (all invalid fields will be automatically excluded)
        """
        update_dict = self._to_dict()
        clean_dict = {}
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        for key, value in update_dict.items():
            if key in validation_dict and value is not None and validation_dict[key](value) is True:
                clean_dict[key] = value
            elif key in validation_dict and value is not None:
                logger.warning(f'_get_validated_update_dict ::: {key=}, {value=} is not valid, '
                               f'removing from update dict..')
        return clean_dict

    def _create_db_record(self) -> None:
        """
        Creates entity db record
        :return:
        None
        """
        self._init_db_record()
        self._validate_mandatory_fields()
        self._validate_optional_fields()
        utils_db.put_db_record(self.db_record)
        logger.info(f"_create_db_record ::: {self.record_type=} {self.id_=} {self.db_record.get('partkey')=} "
                    f"{self.db_record.get('sortkey')=} successfully created")

    def _create_db_record_if_absent(self) -> None:
        """
        Same as _create_db_record, but never overwrites an existing item
        Raise RecordAlreadyExists if the item is already there
        """
        self._init_db_record()
        self._validate_mandatory_fields()
        self._validate_optional_fields()
        if not utils_db.put_db_record_if_absent(self.db_record):
            raise exceptions.RecordAlreadyExists(f'{self.record_type} {self.id_} already exists')
        logger.info(f"_create_db_record_if_absent ::: {self.record_type=} {self.id_=} successfully created")

    def _update_fields_whitelist(self) -> List:
        return [*self.required_mutable_fields_validation.keys(), *self.optional_fields_validation.keys()]

    def _merge_request_body(self, request_body: Dict) -> None:
        """
        Applies the updatable fields of a request body to an entity loaded from db.
        The entity is re-initialized so type conversions of the constructor apply
        """
        request_body = dict(request_body)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        allowed = set(self._update_fields_whitelist()) - {'date_updated', 'updated_by'}
        changes = {key: value for key, value in request_body.items() if key in allowed}
        logger.debug(f'_merge_request_body ::: {self.record_type=} {self.id_=} {changes=}')
        self.__init__(**{**self._to_dict(), **changes})

    def _update_db_record(self, condition_expression=None) -> Optional[Dict]:
        """
        Updates entity db record
        :return:
        Item attributes after the update
        """
        pk, sk = self._get_pk_sk()
        self.date_updated = now_iso()
        update_dict = self._get_validated_update_dict()
        substitute_keys(dict_to_process=update_dict, base_keys=to_db)
        set_response, _ = utils_db.update_db_record(
            key={'partkey': pk, 'sortkey': sk},
            update_body=update_dict,
            allowed_attrs_to_update=self._update_fields_whitelist(),
            allowed_attrs_to_delete=[],
            condition_expression=condition_expression
        )
        logger.info(f"_update_db_record ::: {self.record_type=} "
                    f"{self.id_=} {pk=} {sk=} successfully updated")
        return (set_response or {}).get('Attributes')

    def _delete_db_record(self) -> None:
        pk, sk = self._get_pk_sk()
        utils_db.delete_db_record({'partkey': pk, 'sortkey': sk})
        logger.info(f"_delete_db_record ::: {self.record_type=} {self.id_=} {pk=} {sk=} deleted")

    def _to_ui(self) -> Dict:
        item = self._to_dict()
        substitute_keys(dict_to_process=item, base_keys=from_db)
        return item
