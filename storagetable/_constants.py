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
import platform

__author__ = 'Microsoft Corp. <ptvshelp@microsoft.com>'
__version__ = '0.1.0'

# x-ms-version for storage service.
X_MS_VERSION = '2017-04-17'

# UserAgent string sample: 'Azure-Storage/0.1.0 (Python CPython 3.11.4; Linux 6.1)'
_USER_AGENT_STRING = 'Azure-Storage/{} (Python {} {}; {} {})'.format(__version__,
                                                                   platform.python_implementation(),
                                                                   platform.python_version(),
                                                                   platform.system(),
                                                                   platform.release())

# Header names that are folded into the canonicalized string as custom headers.
_STORAGE_HEADER_PREFIX = 'x-ms-'
_MS_DATE_HEADER = 'x-ms-date'

# Path-style (emulator) requests against the secondary location use this suffix.
_SECONDARY_LOCATION_ACCOUNT_SUFFIX = '-secondary'

# Authorization schemes.
_SHARED_KEY_AUTHORIZATION_SCHEME = 'SharedKey'
_SHARED_KEY_LITE_AUTHORIZATION_SCHEME = 'SharedKeyLite'

# OData versions negotiated with the table service.
_DATA_SERVICE_VERSION = '3.0;'
_MAX_DATA_SERVICE_VERSION = '3.0;NetFx'

_JSON_CONTENT_TYPE = 'application/json'
