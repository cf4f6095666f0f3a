# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Centralized error message patterns for the built-in service providers.

The services report quota and language problems as free-text messages, so
errors are classified by matching these patterns in one place.
"""

# Daily quota exhausted (or key rejected); retried after the quota resets.
QUOTA_EXCEEDED_PATTERNS = (
    r'daily requests? limit has been reached',
    r'key is not valid',
)

# Requested language refused; the whole document is abandoned.
LANGUAGE_UNSUPPORTED_PATTERNS = (
    r'not allowed on the requested languages?',
    r'language .* (is )?not supported',
)

# Unknown concept id in the knowledge base.
UNKNOWN_CONCEPT_PATTERNS = (
    r'invalid (babel ?net|synset) ?id',
    r'not (be )?found',
)
