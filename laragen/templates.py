# File: laragen/templates.py
"""
Laragen - PHP Template Engine
===============================
Turns model names, field lists and relationship records into the PHP source
of a Laravel CRUD slice:

    1. Eloquent relation methods (one per relationship record)
    2. Model and create-table migration stubs
    3. Form requests (Store / Update) with name-driven validation rules
    4. Controllers (web or JSON API, repository-backed or model-backed)
    5. Repository interface + implementation
    6. ``Route::resource`` lines and service-provider bindings

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern and the
generator keeps no mutable state, so one instance serves a whole run.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from laragen.models import LaragenConfig, RelationKind, RelationshipRecord
from laragen.utils import model_to_route_name, to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "
_TRIPLE_INDENT: str = "            "

_RELATION_RETURN_TYPES = {
    RelationKind.BELONGS_TO.value: "BelongsTo",
    RelationKind.HAS_ONE.value: "HasOne",
    RelationKind.HAS_MANY.value: "HasMany",
    RelationKind.BELONGS_TO_MANY.value: "BelongsToMany",
    RelationKind.MORPH_TO.value: "MorphTo",
}

# Ordered (substrings, rule) pairs; the first hit wins.
_RULES_BY_SUBSTRING = (
    (("email",), "email|max:255"),
    (("password",), "string|min:8"),
    (("url", "link"), "url|max:255"),
    (("date", "time"), "date"),
)
_NUMERIC_HINTS = ("price", "amount", "cost", "quantity", "number")
_INTEGER_HINTS = ("count", "id", "_id")


class TemplateGenerator:
    """
    Stateless PHP source generator.

    Each ``generate_*`` method returns a complete file; ``render_*`` methods
    return fragments meant to be spliced into an existing file.
    """

    def __init__(self, config: Optional[LaragenConfig] = None) -> None:
        self._config: LaragenConfig = config or LaragenConfig()
        logger.debug(
            "TemplateGenerator initialised (api=%s, repository=%s).",
            self._config.api_controller,
            self._config.generate_repository,
        )

    # ===================================================================
    # 1. Relation methods
    # ===================================================================

    def render_relation_method(self, model_name: str, record: RelationshipRecord) -> str:
        """
        PHP method declaration for *record*, to be appended to *model_name*.

        The fragment starts with a blank line so consecutive methods stay
        separated once spliced in.  Suggested morphs are rendered from their
        stored proposal.
        """
        kind: RelationKind = RelationKind(record.kind)
        method: str = record.method_name

        if kind == RelationKind.SUGGESTED_MORPH:
            return "\n" + _INDENT + (record.suggested_code or "").strip()

        if kind == RelationKind.BELONGS_TO:
            summary = f"Get the {method} that owns this {model_name}."
            body = (
                f"return $this->belongsTo({record.related_model}::class, "
                f"'{record.local_field}');"
            )
        elif kind in (RelationKind.HAS_MANY, RelationKind.HAS_ONE):
            summary = f"Get the {method} for this {model_name}."
            body = (
                f"return $this->{kind.value}({record.related_model}::class, "
                f"'{record.foreign_field}', '{record.local_field}');"
            )
        elif kind == RelationKind.BELONGS_TO_MANY:
            summary = f"The {method} that belong to this {model_name}."
            body = (
                f"return $this->belongsToMany({record.related_model}::class, "
                f"'{record.pivot_table}');"
            )
        else:
            summary = f"Get the parent {method} model (polymorphic)."
            body = "return $this->morphTo();"

        lines: List[str] = [
            "",
            f"{_INDENT}/**",
            f"{_INDENT} * {summary}",
            f"{_INDENT} *",
            f"{_INDENT} * @return \\Illuminate\\Database\\Eloquent\\Relations\\"
            f"{_RELATION_RETURN_TYPES[kind.value]}",
            f"{_INDENT} */",
            f"{_INDENT}public function {method}()",
            f"{_INDENT}{{",
            f"{_DOUBLE_INDENT}{body}",
            f"{_INDENT}}}",
        ]
        return "\n".join(lines)

    @staticmethod
    def relation_names(records: Iterable[RelationshipRecord]) -> List[str]:
        """Accessor names usable in ``->with([...])`` (suggestions excluded)."""
        names: List[str] = []
        for record in records:
            if record.is_suggestion or record.method_name in names:
                continue
            names.append(record.method_name)
        return names

    # ===================================================================
    # 2. Model & migration stubs
    # ===================================================================

    def generate_model(self, model_name: str) -> str:
        lines: List[str] = [
            "<?php",
            "",
            "namespace App\\Models;",
            "",
            "use Illuminate\\Database\\Eloquent\\Factories\\HasFactory;",
            "use Illuminate\\Database\\Eloquent\\Model;",
            "",
            f"class {model_name} extends Model",
            "{",
            f"{_INDENT}use HasFactory;",
            "}",
            "",
        ]
        return "\n".join(lines)

    def generate_migration(self, table_name: str) -> str:
        lines: List[str] = [
            "<?php",
            "",
            "use Illuminate\\Database\\Migrations\\Migration;",
            "use Illuminate\\Database\\Schema\\Blueprint;",
            "use Illuminate\\Support\\Facades\\Schema;",
            "",
            "return new class extends Migration",
            "{",
            f"{_INDENT}/**",
            f"{_INDENT} * Run the migrations.",
            f"{_INDENT} */",
            f"{_INDENT}public function up(): void",
            f"{_INDENT}{{",
            f"{_DOUBLE_INDENT}Schema::create('{table_name}', function (Blueprint $table) {{",
            f"{_TRIPLE_INDENT}$table->id();",
            f"{_TRIPLE_INDENT}$table->timestamps();",
            f"{_DOUBLE_INDENT}}});",
            f"{_INDENT}}}",
            "",
            f"{_INDENT}/**",
            f"{_INDENT} * Reverse the migrations.",
            f"{_INDENT} */",
            f"{_INDENT}public function down(): void",
            f"{_INDENT}{{",
            f"{_DOUBLE_INDENT}Schema::dropIfExists('{table_name}');",
            f"{_INDENT}}}",
            "};",
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 3. Form requests
    # ===================================================================

    @staticmethod
    def validation_rule(field: str, is_update: bool = False) -> str:
        """
        Validation rule guessed from a field name.

        >>> TemplateGenerator.validation_rule("email")
        'required|email|max:255'
        >>> TemplateGenerator.validation_rule("user_id", is_update=True)
        'sometimes|required|integer'
        """
        required: str = "sometimes|required" if is_update else "required"

        for hints, rule in _RULES_BY_SUBSTRING:
            if any(h in field for h in hints):
                return f"{required}|{rule}"
        if field.startswith(("is_", "has_")) or field in ("active", "status"):
            return f"{required}|boolean"
        if any(h in field for h in _NUMERIC_HINTS):
            return f"{required}|numeric"
        if any(h in field for h in _INTEGER_HINTS):
            return f"{required}|integer"
        return f"{required}|string|max:255"

    def generate_request(
        self,
        class_name: str,
        fields: Sequence[str],
        is_update: bool = False,
    ) -> str:
        lines: List[str] = [
            "<?php",
            "",
            "namespace App\\Http\\Requests;",
            "",
            "use Illuminate\\Foundation\\Http\\FormRequest;",
            "",
            f"class {class_name} extends FormRequest",
            "{",
            f"{_INDENT}/**",
            f"{_INDENT} * Determine if the user is authorized to make this request.",
            f"{_INDENT} */",
            f"{_INDENT}public function authorize(): bool",
            f"{_INDENT}{{",
            f"{_DOUBLE_INDENT}return true;",
            f"{_INDENT}}}",
            "",
            f"{_INDENT}/**",
            f"{_INDENT} * Get the validation rules that apply to the request.",
            f"{_INDENT} */",
            f"{_INDENT}public function rules(): array",
            f"{_INDENT}{{",
            f"{_DOUBLE_INDENT}return [",
        ]
        for field in fields:
            lines.append(f"{_TRIPLE_INDENT}'{field}' => '{self.validation_rule(field, is_update)}',")
        lines.extend(
            [
                f"{_DOUBLE_INDENT}];",
                f"{_INDENT}}}",
                "}",
                "",
            ]
        )
        return "\n".join(lines)

    # ===================================================================
    # 4. Controller
    # ===================================================================

    def generate_controller(
        self,
        model_name: str,
        relation_names: Sequence[str] = (),
        use_repository: Optional[bool] = None,
        api: Optional[bool] = None,
    ) -> str:
        """
        Resource controller for *model_name*.

        *use_repository* and *api* default to the configured values.
        """
        if use_repository is None:
            use_repository = self._config.generate_repository
        if api is None:
            api = self._config.api_controller

        var: str = to_camel_case(model_name)
        store_request: str = f"Store{model_name}Request"
        update_request: str = f"Update{model_name}Request"
        relations: str = _php_array(relation_names)
        repo: str = f"$this->{var}Repository"

        lines: List[str] = [
            "<?php",
            "",
            "namespace App\\Http\\Controllers;",
            "",
            f"use App\\Models\\{model_name};",
            f"use App\\Http\\Requests\\{store_request};",
            f"use App\\Http\\Requests\\{update_request};",
        ]
        if use_repository:
            lines.append(f"use App\\Repositories\\Interfaces\\{model_name}RepositoryInterface;")
        lines.extend(
            [
                "use Illuminate\\Support\\Facades\\DB;",
                "use Illuminate\\Http\\JsonResponse;",
                "",
                "// Add this route to your routes file:",
                f"// Route::get('/{model_to_route_name(model_name)}/with-relations', "
                f"[App\\Http\\Controllers\\{model_name}Controller::class, 'getWithRelations']);",
                "",
                f"class {model_name}Controller extends Controller",
                "{",
            ]
        )

        if use_repository:
            lines.extend(
                _doc_block(f"The {model_name} repository instance.")
                + [f"{_INDENT}protected ${var}Repository;", ""]
            )
            constructor_params = f"{model_name}RepositoryInterface ${var}Repository"
            constructor_body = [f"$this->{var}Repository = ${var}Repository;"]
            with_relations = [
                f"$data = {repo}->getWithRelations({relations}, 15);",
                "",
                "return response()->json(['data' => $data]);",
            ]
        else:
            lines.extend(
                _doc_block(f"The {model_name} model instance.")
                + [f"{_INDENT}protected $model;", ""]
            )
            constructor_params = f"{model_name} $model"
            constructor_body = ["$this->model = $model;"]
            with_relations = [
                f"$data = $this->model->with({relations})->paginate(15);",
                "",
                "return response()->json(['data' => $data]);",
            ]

        if api:
            bodies = self._api_bodies(model_name, var, use_repository)
        else:
            bodies = self._web_bodies(var, use_repository)

        lines.extend(
            _method(
                "Create a new controller instance.",
                f"public function __construct({constructor_params})",
                constructor_body,
            )
        )
        lines.extend(
            _method(
                "Display a listing of the resource.",
                "public function index()",
                bodies["index"],
            )
        )
        lines.extend(
            _method(
                "Get resources with relations.",
                "public function getWithRelations(): JsonResponse",
                with_relations,
            )
        )
        lines.extend(
            _method(
                "Store a newly created resource in storage.",
                f"public function store({store_request} $request)",
                bodies["store"],
            )
        )
        lines.extend(
            _method(
                "Display the specified resource.",
                f"public function show({model_name} ${var})",
                bodies["show"],
            )
        )
        lines.extend(
            _method(
                "Update the specified resource in storage.",
                f"public function update({update_request} $request, {model_name} ${var})",
                bodies["update"],
            )
        )
        lines.extend(
            _method(
                "Remove the specified resource from storage.",
                f"public function destroy({model_name} ${var})",
                bodies["destroy"],
                last=True,
            )
        )
        lines.extend(["}", ""])
        return "\n".join(lines)

    @staticmethod
    def _web_bodies(var: str, use_repository: bool) -> dict:
        if use_repository:
            repo = f"$this->{var}Repository"
            return {
                "index": [f"return {repo}->getAll();"],
                "store": [
                    "$validated = $request->validated();",
                    f"return {repo}->create($validated);",
                ],
                "show": [f"return ${var};"],
                "update": [
                    "$validated = $request->validated();",
                    f"return {repo}->update(${var}, $validated);",
                ],
                "destroy": [
                    f"{repo}->delete(${var});",
                    "return response()->noContent();",
                ],
            }
        return {
            "index": ["return $this->model->all();"],
            "store": [
                "$validated = $request->validated();",
                "",
                "return DB::transaction(function () use ($validated) {",
                f"{_INDENT}return $this->model->create($validated);",
                "});",
            ],
            "show": [f"return ${var};"],
            "update": [
                "$validated = $request->validated();",
                "",
                f"return DB::transaction(function () use (${var}, $validated) {{",
                f"{_INDENT}${var}->update($validated);",
                f"{_INDENT}return ${var};",
                "});",
            ],
            "destroy": [
                f"return DB::transaction(function () use (${var}) {{",
                f"{_INDENT}${var}->delete();",
                f"{_INDENT}return response()->noContent();",
                "});",
            ],
        }

    @staticmethod
    def _api_bodies(model_name: str, var: str, use_repository: bool) -> dict:
        if use_repository:
            repo = f"$this->{var}Repository"
            index = [f"$data = {repo}->getAll();"]
            create = [f"$created = {repo}->create($validated);"]
            update = [f"$updated = {repo}->update(${var}, $validated);"]
            delete = [f"{repo}->delete(${var});"]
        else:
            index = ["$data = $this->model->all();"]
            create = [
                "$created = DB::transaction(function () use ($validated) {",
                f"{_INDENT}return $this->model->create($validated);",
                "});",
            ]
            update = [
                f"$updated = DB::transaction(function () use (${var}, $validated) {{",
                f"{_INDENT}${var}->update($validated);",
                f"{_INDENT}return ${var};",
                "});",
            ]
            delete = [
                f"DB::transaction(function () use (${var}) {{",
                f"{_INDENT}${var}->delete();",
                "});",
            ]
        return {
            "index": index + ["return response()->json(['data' => $data]);"],
            "store": ["$validated = $request->validated();", ""]
            + create
            + [
                "",
                "return response()->json([",
                f"{_INDENT}'message' => '{model_name} created successfully',",
                f"{_INDENT}'data' => $created",
                "], 201);",
            ],
            "show": [f"return response()->json(['data' => ${var}]);"],
            "update": ["$validated = $request->validated();", ""]
            + update
            + [
                "",
                "return response()->json([",
                f"{_INDENT}'message' => '{model_name} updated successfully',",
                f"{_INDENT}'data' => $updated",
                "]);",
            ],
            "destroy": delete
            + [
                "",
                "return response()->json([",
                f"{_INDENT}'message' => '{model_name} deleted successfully'",
                "]);",
            ],
        }

    # ===================================================================
    # 5. Repository
    # ===================================================================

    def generate_repository_interface(self, model_name: str) -> str:
        var: str = to_camel_case(model_name)
        lines: List[str] = [
            "<?php",
            "",
            "namespace App\\Repositories\\Interfaces;",
            "",
            f"use App\\Models\\{model_name};",
            "use Illuminate\\Database\\Eloquent\\Collection;",
            "use Illuminate\\Pagination\\LengthAwarePaginator;",
            "",
            f"interface {model_name}RepositoryInterface",
            "{",
        ]
        signatures = [
            (
                ["Get all records with relations", "", "@param array $relations",
                 "@param int|null $perPage", "@return Collection|LengthAwarePaginator"],
                "public function getWithRelations(array $relations = [], ?int $perPage = null);",
            ),
            (["Get all records", "", "@return Collection"],
             "public function getAll(): Collection;"),
            (["Find a record by ID", "", "@param int $id", f"@return {model_name}|null"],
             f"public function findById($id): ?{model_name};"),
            (["Create a new record", "", "@param array $data", f"@return {model_name}"],
             f"public function create(array $data): {model_name};"),
            (
                ["Update an existing record", "", f"@param {model_name} ${var}",
                 "@param array $data", f"@return {model_name}"],
                f"public function update({model_name} ${var}, array $data): {model_name};",
            ),
            (["Delete a record", "", f"@param {model_name} ${var}", "@return bool"],
             f"public function delete({model_name} ${var}): bool;"),
        ]
        for index, (doc, signature) in enumerate(signatures):
            if index:
                lines.append("")
            lines.extend(_doc_block(*doc))
            lines.append(f"{_INDENT}{signature}")
        lines.extend(["}", ""])
        return "\n".join(lines)

    def generate_repository(self, model_name: str, relation_names: Sequence[str] = ()) -> str:
        var: str = to_camel_case(model_name)
        lines: List[str] = [
            "<?php",
            "",
            "namespace App\\Repositories;",
            "",
            f"use App\\Models\\{model_name};",
            f"use App\\Repositories\\Interfaces\\{model_name}RepositoryInterface;",
            "use Illuminate\\Database\\Eloquent\\Collection;",
            "use Illuminate\\Pagination\\LengthAwarePaginator;",
            "use Illuminate\\Support\\Facades\\DB;",
            "",
            f"class {model_name}Repository implements {model_name}RepositoryInterface",
            "{",
        ]
        lines.extend(_doc_block(f"@var {model_name}"))
        lines.extend([f"{_INDENT}protected $model;", ""])
        lines.extend(
            _method(
                f"Constructor\n\n@param {model_name} $model",
                f"public function __construct({model_name} $model)",
                ["$this->model = $model;"],
            )
        )
        lines.extend(
            _method(
                "Get all records with relations\n\n@param array $relations\n"
                "@param int|null $perPage\n@return Collection|LengthAwarePaginator",
                "public function getWithRelations(array $relations = [], ?int $perPage = null)",
                [
                    "$query = $this->model->query();",
                    "",
                    "if (!empty($relations)) {",
                    f"{_INDENT}$query->with($relations);",
                    "} else {",
                    f"{_INDENT}$query->with({_php_array(relation_names)});",
                    "}",
                    "",
                    "if ($perPage !== null) {",
                    f"{_INDENT}return $query->paginate($perPage);",
                    "}",
                    "",
                    "return $query->get();",
                ],
            )
        )
        lines.extend(
            _method(
                "Get all records\n\n@return Collection",
                "public function getAll(): Collection",
                ["return $this->model->all();"],
            )
        )
        lines.extend(
            _method(
                f"Find a record by ID\n\n@param int $id\n@return {model_name}|null",
                f"public function findById($id): ?{model_name}",
                ["return $this->model->find($id);"],
            )
        )
        lines.extend(
            _method(
                f"Create a new record\n\n@param array $data\n@return {model_name}",
                f"public function create(array $data): {model_name}",
                [
                    "return DB::transaction(function () use ($data) {",
                    f"{_INDENT}return $this->model->create($data);",
                    "});",
                ],
            )
        )
        lines.extend(
            _method(
                f"Update an existing record\n\n@param {model_name} ${var}\n"
                f"@param array $data\n@return {model_name}",
                f"public function update({model_name} ${var}, array $data): {model_name}",
                [
                    f"return DB::transaction(function () use (${var}, $data) {{",
                    f"{_INDENT}${var}->update($data);",
                    f"{_INDENT}return ${var};",
                    "});",
                ],
            )
        )
        lines.extend(
            _method(
                f"Delete a record\n\n@param {model_name} ${var}\n@return bool",
                f"public function delete({model_name} ${var}): bool",
                [
                    f"return DB::transaction(function () use (${var}) {{",
                    f"{_INDENT}return ${var}->delete();",
                    "});",
                ],
                last=True,
            )
        )
        lines.extend(["}", ""])
        return "\n".join(lines)

    # ===================================================================
    # 6. Routes & bindings
    # ===================================================================

    @staticmethod
    def route_line(model_name: str) -> str:
        return (
            f"Route::resource('{model_to_route_name(model_name)}', "
            f"App\\Http\\Controllers\\{model_name}Controller::class);"
        )

    @staticmethod
    def binding_line(model_name: str) -> str:
        return (
            f"$this->app->bind(\\App\\Repositories\\Interfaces\\{model_name}RepositoryInterface::class, "
            f"\\App\\Repositories\\{model_name}Repository::class);"
        )

    def __repr__(self) -> str:
        return f"<TemplateGenerator api={self._config.api_controller}>"


# ---------------------------------------------------------------------------
# Fragment helpers
# ---------------------------------------------------------------------------


def _php_array(items: Sequence[str]) -> str:
    if not items:
        return "[]"
    return "[" + ", ".join(f"'{item}'" for item in items) + "]"


def _doc_block(*text: str) -> List[str]:
    """PHPDoc comment at class-member indentation; embedded newlines split lines."""
    lines: List[str] = [f"{_INDENT}/**"]
    for chunk in text:
        for line in chunk.split("\n"):
            lines.append(f"{_INDENT} * {line}" if line else f"{_INDENT} *")
    lines.append(f"{_INDENT} */")
    return lines


def _method(doc: str, signature: str, body: Sequence[str], last: bool = False) -> List[str]:
    lines: List[str] = _doc_block(doc)
    lines.append(f"{_INDENT}{signature}")
    lines.append(f"{_INDENT}{{")
    for line in body:
        lines.append(f"{_DOUBLE_INDENT}{line}" if line else "")
    lines.append(f"{_INDENT}}}")
    if not last:
        lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TemplateGenerator",
]

logger.debug("laragen.templates loaded.")
