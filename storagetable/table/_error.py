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
_ERROR_ATTRIBUTE_MISSING = '\'{0}\' object has no attribute \'{1}\''
_ERROR_INCORRECT_PARTITION_KEY_IN_BATCH = \
    'Partition Key should be the same in a batch operations'
_ERROR_DUPLICATE_ROW_KEY_IN_BATCH = \
    'Row Keys should not be the same in a batch operations'
_ERROR_TOO_MANY_ENTITIES_IN_BATCH = \
    'Batches may only contain 100 operations'
_ERROR_RETRIEVE_MUST_BE_ONLY_OPERATION_IN_BATCH = \
    'A batch with a retrieve operation cannot contain any other operations'
_ERROR_EMPTY_BATCH = 'A batch must contain at least one operation'
_ERROR_CANNOT_SERIALIZE_VALUE_TO_ENTITY = \
    'Cannot serialize the specified value ({0}) to an entity.  Please use ' + \
    'an EntityProperty (which can specify custom types), int, str, bool, ' + \
    'float, datetime, bytes or UUID.'
_ERROR_VALUE_TOO_LARGE = '{0} is too large to be cast to type {1}.'
_ERROR_INVALID_BOOLEAN_VALUE = '{0} cannot be written as Edm.Boolean. Use a bool, \'true\' or \'false\'.'
_ERROR_INVALID_ENTITY = 'The entity must be either in dict format or an entity object.'
_ERROR_UNSUPPORTED_ENCRYPTION_FOR_MERGE = \
    'Client-side encryption is not supported for merge operations.'
_ERROR_ENCRYPTION_POLICY_REQUIRED = \
    'require_encryption is set but no encryption policy was specified.'
_ERROR_ENCRYPTION_POLICY_REQUIRED_FOR_KEY_ROTATION = \
    'An encryption policy is required to rotate the encryption key of an entity.'


def _validate_entity(entity):
    if entity is None or isinstance(entity, (str, bytes, int, float)):
        raise TypeError(_ERROR_INVALID_ENTITY)
