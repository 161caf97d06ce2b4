#-------------------------------------------------------------------------
# Copyright (c) Microsoft.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#--------------------------------------------------------------------------
import logging
import uuid
from datetime import datetime
from json import (
    dumps,
)
from math import (
    isnan,
)

from dateutil.tz import tzutc

from .._common_conversion import (
    _encode_base64,
    _str,
)
from .._constants import (
    _DATA_SERVICE_VERSION,
    _JSON_CONTENT_TYPE,
)
from .._serialization import _escape_uri
from ._error import (
    _ERROR_CANNOT_SERIALIZE_VALUE_TO_ENTITY,
    _ERROR_EMPTY_BATCH,
    _ERROR_ENCRYPTION_POLICY_REQUIRED,
    _ERROR_ENCRYPTION_POLICY_REQUIRED_FOR_KEY_ROTATION,
    _ERROR_INVALID_BOOLEAN_VALUE,
    _ERROR_UNSUPPORTED_ENCRYPTION_FOR_MERGE,
    _ERROR_VALUE_TOO_LARGE,
)
from .models import (
    AzureEncryptionPolicyError,
    EdmType,
    Entity,
    EntityProperty,
    TableOperationType,
    TableRequestOptions,
)

logger = logging.getLogger(__name__)

_PARTITION_KEY = 'PartitionKey'
_ROW_KEY = 'RowKey'
_TIMESTAMP = 'Timestamp'
_ETAG = 'etag'
_RESERVED_PROPERTY_NAMES = (_PARTITION_KEY, _ROW_KEY, _TIMESTAMP, _ETAG)
_ODATA_TYPE_SUFFIX = '@odata.type'
_ENCRYPTION_KEY_DETAILS = '_ClientEncryptionMetadata2'

_INT32_MAX = (2 << 30) - 1
_INT64_MAX = (2 << 62) - 1

_BATCH_LINE_SEPARATOR = '\r\n'

# Per operation type behaviour, shared by single requests and batches.
_HTTP_METHODS = {
    TableOperationType.INSERT: 'POST',
    TableOperationType.DELETE: 'DELETE',
    TableOperationType.REPLACE: 'PUT',
    TableOperationType.MERGE: 'POST',
    TableOperationType.INSERT_OR_MERGE: 'POST',
    TableOperationType.INSERT_OR_REPLACE: 'PUT',
    TableOperationType.RETRIEVE: 'GET',
    TableOperationType.ROTATE_ENCRYPTION_KEY: 'POST',
}
_MERGE_OPERATIONS = frozenset([
    TableOperationType.MERGE,
    TableOperationType.INSERT_OR_MERGE,
])
_TUNNELED_MERGE_OPERATIONS = _MERGE_OPERATIONS | frozenset([
    TableOperationType.ROTATE_ENCRYPTION_KEY,
])
_CONDITIONAL_OPERATIONS = frozenset([
    TableOperationType.DELETE,
    TableOperationType.REPLACE,
    TableOperationType.MERGE,
    TableOperationType.ROTATE_ENCRYPTION_KEY,
])
_BODY_OPERATIONS = frozenset([
    TableOperationType.INSERT,
    TableOperationType.MERGE,
    TableOperationType.INSERT_OR_MERGE,
    TableOperationType.INSERT_OR_REPLACE,
    TableOperationType.REPLACE,
    TableOperationType.ROTATE_ENCRYPTION_KEY,
])


def _get_entity_path(table_name, partition_key, row_key):
    return '/{0}(PartitionKey=\'{1}\',RowKey=\'{2}\')'.format(
            _str(table_name),
            _str(partition_key).replace('\'', '\'\''),
            _str(row_key).replace('\'', '\'\''))


def _get_operation_path(table_name, operation):
    if operation.operation_type == TableOperationType.INSERT:
        return '/{0}()'.format(_str(table_name))
    return _get_entity_path(table_name, operation.partition_key, operation.row_key)


def _get_http_method(operation, tunneled_method='POST'):
    '''
    Returns the verb for the operation. Merge-type operations travel as
    tunneled_method: POST plus X-HTTP-Method on a single request, the MERGE
    verb itself on a batch request line.
    '''
    if operation.operation_type in _TUNNELED_MERGE_OPERATIONS:
        return tunneled_method
    return _HTTP_METHODS[operation.operation_type]


def _get_prefer_value(operation):
    return 'return-content' if operation.echo_content else 'return-no-content'


def _to_entity_int(value):
    if value > _INT32_MAX or value < (_INT32_MAX + 1) * (-1):
        return _to_entity_int64(value)
    return None, value


def _to_entity_int32(value):
    value = int(value)
    if value > _INT32_MAX or value < (_INT32_MAX + 1) * (-1):
        raise TypeError(_ERROR_VALUE_TOO_LARGE.format(value, EdmType.INT32))
    return None, value


def _to_entity_int64(value):
    value = int(value)
    if value > _INT64_MAX or value < (_INT64_MAX + 1) * (-1):
        raise TypeError(_ERROR_VALUE_TOO_LARGE.format(value, EdmType.INT64))
    return EdmType.INT64, str(value)


def _to_entity_bool(value):
    return None, value


def _to_entity_edm_bool(value):
    if isinstance(value, bool):
        return None, value
    if isinstance(value, str):
        if value.lower() == 'true':
            return None, True
        if value.lower() == 'false':
            return None, False
    raise TypeError(_ERROR_INVALID_BOOLEAN_VALUE.format(value))


def _to_entity_datetime(value):
    # Azure expects the date value passed in to be UTC.
    # Azure will always return values as UTC.
    # If a date is passed in without timezone info, it is assumed to be UTC.
    if value.tzinfo:
        value = value.astimezone(tzutc())
    # round-trip format, seven fractional digits. strftime does not pad
    # years below 1000 on every platform.
    return EdmType.DATETIME, '{0:04d}-{1:02d}-{2:02d}T{3:02d}:{4:02d}:{5:02d}.{6:07d}Z'.format(
        value.year, value.month, value.day,
        value.hour, value.minute, value.second, value.microsecond * 10)


def _to_entity_float(value):
    if isnan(value):
        return EdmType.DOUBLE, 'NaN'
    if value == float('inf'):
        return EdmType.DOUBLE, 'Infinity'
    if value == float('-inf'):
        return EdmType.DOUBLE, '-Infinity'
    return None, value


def _to_entity_binary(value):
    return EdmType.BINARY, _encode_base64(bytes(value))


def _to_entity_guid(value):
    return EdmType.GUID, _str(value)


def _to_entity_str(value):
    return None, value


def _to_entity_edm_datetime(value):
    if isinstance(value, datetime):
        return _to_entity_datetime(value)
    return EdmType.DATETIME, _str(value)


def _to_entity_edm_binary(value):
    if isinstance(value, str):
        value = value.encode('utf-8')
    return _to_entity_binary(value)


# Conversion from an explicit EdmType to a function which returns a tuple of
# the type string (None when the JSON value is unambiguous) and the value.
_EDM_TO_ENTITY_CONVERSIONS = {
    EdmType.BINARY: _to_entity_edm_binary,
    EdmType.INT64: _to_entity_int64,
    EdmType.GUID: _to_entity_guid,
    EdmType.DATETIME: _to_entity_edm_datetime,
    EdmType.STRING: lambda value: (None, _str(value)),
    EdmType.INT32: _to_entity_int32,
    EdmType.DOUBLE: lambda value: _to_entity_float(float(value)),
    EdmType.BOOLEAN: _to_entity_edm_bool,
}


def _to_entity_property(value):
    conv = _EDM_TO_ENTITY_CONVERSIONS.get(value.type)
    if conv is None:
        raise TypeError(_ERROR_CANNOT_SERIALIZE_VALUE_TO_ENTITY.format(value.type))
    return conv(value.value)


# Conversion from Python type to a function which returns a tuple of the
# type string and content string.
_PYTHON_TO_ENTITY_CONVERSIONS = {
    int: _to_entity_int,
    bool: _to_entity_bool,
    datetime: _to_entity_datetime,
    float: _to_entity_float,
    EntityProperty: _to_entity_property,
    str: _to_entity_str,
    bytes: _to_entity_binary,
    bytearray: _to_entity_binary,
    uuid.UUID: _to_entity_guid,
}


def _get_entity_key(entity, name):
    if isinstance(entity, dict):
        return entity.get(name)
    return getattr(entity, name, None)


def _get_writable_properties(entity):
    '''
    Returns a fresh dict of the properties to send, in their natural order.
    Dict entities contribute every key; other objects their public attributes.
    '''
    if isinstance(entity, dict):
        items = entity.items()
    else:
        items = [(name, value) for name, value in vars(entity).items()
                 if not name.startswith('_')]

    return dict((name, value) for name, value in items
                if name not in _RESERVED_PROPERTY_NAMES)


def _assert_policy_if_required(options):
    if options.require_encryption and options.encryption_policy is None:
        raise AzureEncryptionPolicyError(_ERROR_ENCRYPTION_POLICY_REQUIRED)


def _assert_no_encryption_policy_or_strict_mode(options):
    # The list of encrypted properties is kept on the entity itself and
    # cannot be kept accurate by a merge.
    if options is not None and (options.encryption_policy is not None or options.require_encryption):
        raise AzureEncryptionPolicyError(_ERROR_UNSUPPORTED_ENCRYPTION_FOR_MERGE)


def _get_properties_from_dict(properties, options, partition_key, row_key, ignore_encryption):
    if options is not None:
        _assert_policy_if_required(options)

        if options.encryption_policy is not None and not ignore_encryption:
            properties = options.encryption_policy.encrypt_entity(
                properties, partition_key, row_key, options.encryption_resolver)

    return list(properties.items())


def _get_properties_with_keys(entity, operation_type, options=None, ignore_encryption=False):
    '''
    Returns a generator of the (name, value) pairs to write for the entity.
    Insert leads with PartitionKey and RowKey. Values whose JSON form is
    ambiguous are followed by a '<name>@odata.type' pair; None values are
    left out.

    The options are checked and the encryption policy, if any, is applied
    before this returns, so configuration errors are raised here rather than
    while iterating.
    '''
    if operation_type in _MERGE_OPERATIONS:
        _assert_no_encryption_policy_or_strict_mode(options)

    partition_key = _get_entity_key(entity, _PARTITION_KEY)
    row_key = _get_entity_key(entity, _ROW_KEY)
    properties = _get_properties_from_dict(_get_writable_properties(entity), options,
                                           partition_key, row_key, ignore_encryption)

    return _generate_properties(operation_type, partition_key, row_key, properties)


def _generate_properties(operation_type, partition_key, row_key, properties):
    if operation_type == TableOperationType.INSERT:
        # either key may be left for the service to assign
        if partition_key is not None:
            yield _PARTITION_KEY, partition_key

        if row_key is not None:
            yield _ROW_KEY, row_key

    for name, value in properties:
        if isinstance(value, EntityProperty) and value.value is None:
            value = None
        if value is None:
            continue

        conv = _PYTHON_TO_ENTITY_CONVERSIONS.get(type(value))
        if conv is None:
            raise TypeError(
                _ERROR_CANNOT_SERIALIZE_VALUE_TO_ENTITY.format(
                    type(value).__name__))

        mtype, value = conv(value)
        yield name, value
        if mtype:
            yield name + _ODATA_TYPE_SUFFIX, mtype


def _get_entity_to_write(operation, options):
    if operation.operation_type != TableOperationType.ROTATE_ENCRYPTION_KEY:
        return operation.entity

    if options is None or options.encryption_policy is None:
        raise AzureEncryptionPolicyError(_ERROR_ENCRYPTION_POLICY_REQUIRED_FOR_KEY_ROTATION)

    # Key rotation is a merge that only rewrites the wrapped key details.
    inner_entity = Entity()
    inner_entity.PartitionKey = operation.partition_key
    inner_entity.RowKey = operation.row_key
    inner_entity[_ENCRYPTION_KEY_DETAILS] = options.encryption_policy.rotate_encryption_key(
        operation.entity, options.encryption_resolver)
    return inner_entity


def _convert_entity_to_json(entity, operation_type=TableOperationType.INSERT,
                            options=None, ignore_encryption=False):
    ''' Converts an entity object to json to send.
    The entity format is:
    {
       "PartitionKey":"mypartitionkey",
       "RowKey":"myrowkey",
       "Address":"Mountain View",
       "Age":23,
       "AmountDue":200.23,
       "CustomerCode":"c9da6455-213d-42c9-9a79-3e9149a57833",
       "CustomerCode@odata.type":"Edm.Guid",
       "CustomerSince":"2008-07-10T00:00:00.0000000Z",
       "CustomerSince@odata.type":"Edm.DateTime",
       "IsActive":true,
       "NumberOfOrders":"255",
       "NumberOfOrders@odata.type":"Edm.Int64"
    }
    '''
    properties = {}
    for name, value in _get_properties_with_keys(entity, operation_type, options, ignore_encryption):
        properties[name] = value

    return dumps(properties)


def _convert_operation_to_json(operation, options):
    entity = _get_entity_to_write(operation, options)
    ignore_encryption = operation.operation_type == TableOperationType.ROTATE_ENCRYPTION_KEY
    return _convert_entity_to_json(entity, operation.operation_type, options, ignore_encryption)


def _validate_batch_options(operations, options):
    for operation in operations:
        if operation.operation_type in _MERGE_OPERATIONS:
            _assert_no_encryption_policy_or_strict_mode(options)
        elif operation.operation_type == TableOperationType.ROTATE_ENCRYPTION_KEY:
            if options.encryption_policy is None:
                raise AzureEncryptionPolicyError(_ERROR_ENCRYPTION_POLICY_REQUIRED_FOR_KEY_ROTATION)


def _new_boundary():
    return str(uuid.uuid4())


def _convert_batch_to_multipart(uri, table_name, operations, options):
    '''
    Serializes the operations into a multipart/mixed batch body. A lone
    retrieve is written as a query; anything else goes inside one changeset.
    Every operation is checked against the options before anything is written.

    :return: the body and the Content-Type header value for it.
    :rtype: tuple(bytes, str)
    '''
    if not operations:
        raise ValueError(_ERROR_EMPTY_BATCH)

    options = options or TableRequestOptions()
    _validate_batch_options(operations, options)

    batch_id = _new_boundary()
    changeset_id = _new_boundary()
    batch_separator = '--batch_' + batch_id
    changeset_separator = '--changeset_' + changeset_id
    accept_header = 'Accept: ' + options.payload_format

    logger.debug("Writing batch_%s with %d operation(s), payload format %s",
                 batch_id, len(operations), options.payload_format)

    is_query = len(operations) == 1 and operations[0].operation_type == TableOperationType.RETRIEVE

    lines = [batch_separator]

    # Query operations are not wrapped in a changeset.
    if not is_query:
        lines.append('Content-Type: multipart/mixed; boundary=changeset_' + changeset_id)
        lines.append('')

    base_uri = uri.rstrip('/')
    for operation in operations:
        if not is_query:
            lines.append(changeset_separator)

        lines.append('Content-Type: application/http')
        lines.append('Content-Transfer-Encoding: binary')
        lines.append('')

        request_uri = _escape_uri(base_uri + _get_operation_path(table_name, operation))
        lines.append(_get_http_method(operation, 'MERGE') + ' ' + request_uri + ' HTTP/1.1')
        lines.append(accept_header)
        lines.append('Content-Type: ' + _JSON_CONTENT_TYPE)

        if operation.operation_type == TableOperationType.INSERT:
            lines.append('Prefer: ' + _get_prefer_value(operation))

        lines.append('DataServiceVersion: ' + _DATA_SERVICE_VERSION)

        if operation.operation_type in _CONDITIONAL_OPERATIONS and operation.etag is not None:
            lines.append('If-Match: ' + operation.etag)

        lines.append('')

        if operation.operation_type in _BODY_OPERATIONS:
            lines.append(_convert_operation_to_json(operation, options))

    if not is_query:
        lines.append(changeset_separator + '--')

    lines.append(batch_separator + '--')

    body = _BATCH_LINE_SEPARATOR.join(lines) + _BATCH_LINE_SEPARATOR
    return body.encode('utf-8'), 'multipart/mixed; boundary=batch_' + batch_id
