"""Instruction prompts sent to the provider with each job."""

from __future__ import annotations

KNOWLEDGE_GRAPH_PROMPT = """
**Instruction:**
Extract a detailed knowledge graph from the given text by identifying entities, their relationships, and their attributes.
Represent these facts as triples and include both explicit and reasonably inferred information.

**Output Requirements:**
- **Entities:** Identify key concepts (people, places, things, events, etc.).
- **Relationships:** Show how entities connect or interact.
- **Attributes:** Provide entity attributes or properties as triples (e.g., ("Entity", "attribute_name", "value")).
- **Graph Representation:** List all extracted facts as triples in the format: (Subject, Predicate, Object).

**Guidelines:**
1. Use clear, descriptive language for relationships and attributes.
2. Only include facts that are explicitly stated or that can be reasonably inferred from the text.
3. Avoid redundancy; do not repeat the same fact.
4. For vague or uncertain relationships, use "associated with".
5. Infer "is_a" or classification relationships when context allows. For example, if a name is
   mentioned as a known historical figure, you can infer ("Name", "is_a", "Person").
6. Attributes can describe properties like profession, achievements, or characteristics of an entity.

**Example Input:**
"Marie Curie discovered radium and polonium and won two Nobel Prizes for her work in chemistry and physics."

**Example Output:**
- ("Marie Curie", "discovered", "Radium")
- ("Marie Curie", "discovered", "Polonium")
- ("Marie Curie", "won", "Nobel Prize")
- ("Nobel Prize", "associated with", "Chemistry")
- ("Nobel Prize", "associated with", "Physics")
- ("Marie Curie", "profession", "Scientist")
- ("Radium", "discovered by", "Marie Curie")
- ("Marie Curie", "is_a", "Person")

**Extract the knowledge graph from the text:**
"""

EVALUATION_PROMPT = """
Evaluate the provided text's suitability for LLM-based extraction. Your response must be in
**markdown** with the sections **Missing mandatory fields**, **Improvement Opportunities**,
**Description improvements** and **Schema Improvements**.

**Missing mandatory fields**
- List only critical missing fields.
- If reporting on a missing field, provide the path in *italics* and the field's description.
- If none, state "No issues."
- Do not treat inferable information as missing.

**Improvement Opportunities**
- Suggest specific additions or changes to enhance schema alignment.
- If none, state "No improvements needed."
- When suggesting a field, include the description found in the schema.

**Description improvements**
- Suggest how schema descriptions can be more accurate and useful for LLM-based extraction.
- Keep descriptions explicit, but allow for expected domain knowledge.
- List the JSON path, the new description and why it is better.

**Schema Improvements**
- Suggest broad adaptations of the schema that are not specific to the given text.
- Stay within the overall concept of the schema.

**Guidelines**
- The LLM can infer data; do not be overly strict.
- If something is stated as not existing, it is not an issue.
- This is a quality assessment, not strict validation.
- Use *italics* for schema fields and paths.
- No need to restate data that matches the schema.

Extremely important:
- If the text does not fit add exactly <UNFIT> to the end of the report.
- If the text fits add exactly <FIT> to the end of the report.
- Schema suggestions do not count as UNFIT.

Return the report in markdown format, but do not use backticks.
"""

DEFAULT_EXTRACT_PROMPT = (
    "You are tasked to extract data from a given text, PDF or image. If something is not "
    "supplied directly, leave it empty. Work precisely and do not hallucinate. The following "
    "are instructions that have to be followed strictly: "
)


def build_evaluation_instructions(system_prompt: str, schema: str) -> str:
    """Combine the caller's pre-prompt, the evaluation rubric and the schema."""

    return f"{system_prompt}\n\n{EVALUATION_PROMPT}\n\nSchema:\n{schema}"


def build_graph_instructions(prompt: str) -> str:
    return f"{KNOWLEDGE_GRAPH_PROMPT}\n\n{prompt}"


def build_extract_instructions(system_prompt: str) -> str:
    return f"{DEFAULT_EXTRACT_PROMPT}\n\n{system_prompt}"
