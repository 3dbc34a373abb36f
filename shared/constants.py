# Copyright 2025 Google LLC
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
# ==============================================================================

# Food pairing tags as used by Systembolaget. Order is the order shown to
# the models in prompts.
VALID_FOOD_TAGS = (
    "Nöt",
    "Fläsk",
    "Fågel",
    "Fisk",
    "Skaldjur",
    "Vegetariskt",
    "Sällskapsdryck",
    "Lamm",
    "Vilt",
    "Ljust kött",
)

UNKNOWN_WINE_NAME = "Okänt vin"

MIN_RATING = 1
MAX_RATING = 5

MAX_NOTES_LENGTH = 4000
MAX_FOOD_QUERY_LENGTH = 500
MAX_IMAGE_BYTES = 10 * 1024 * 1024

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
    "image/gif": "gif",
}
