# ==========================================
# Bundled After Effects Scripting Reference
# ==========================================
# Seed corpus used when neither the local cache nor the published
# knowledge.json can be loaded. Same shape as the published document.

SEED_CORPUS = {
    "version": "seed-1",
    "atoms": [
        {
            "className": "Application",
            "member": "project",
            "returnType": "Project",
            "description": "The project currently loaded in After Effects.",
            "tags": ["app", "project"],
        },
        {
            "className": "Project",
            "member": "activeItem",
            "returnType": "Item|null",
            "description": "Item open in the active viewer; check instanceof CompItem before use.",
            "tags": ["comp", "composition", "active"],
        },
        {
            "className": "ItemCollection",
            "member": "addComp",
            "signature": "(name, width, height, pixelAspect, duration, frameRate)",
            "returnType": "CompItem",
            "description": "Creates a new composition in the project panel.",
            "tags": ["comp", "composition", "create"],
        },
        {
            "className": "CompItem",
            "member": "selectedLayers",
            "returnType": "Array of Layer",
            "description": "Layers currently selected in the timeline, in selection order.",
            "tags": ["selected", "selection", "layer", "layers"],
        },
        {
            "className": "CompItem",
            "member": "layer",
            "signature": "(index)",
            "returnType": "Layer",
            "description": "Returns a layer by 1-based index or by name.",
            "tags": ["layer", "index"],
        },
        {
            "className": "LayerCollection",
            "member": "addSolid",
            "signature": "(color, name, width, height, pixelAspect, duration)",
            "returnType": "AVLayer",
            "description": "Adds a solid layer; color is an [r, g, b] array in 0..1.",
            "tags": ["solid", "layer", "create", "color", "background"],
        },
        {
            "className": "LayerCollection",
            "member": "addText",
            "signature": "(sourceText)",
            "returnType": "TextLayer",
            "description": "Adds a text layer containing sourceText.",
            "tags": ["text", "layer", "create", "title"],
        },
        {
            "className": "LayerCollection",
            "member": "addShape",
            "signature": "()",
            "returnType": "ShapeLayer",
            "description": "Adds an empty shape layer; add contents through ADBE Root Vectors Group.",
            "tags": ["shape", "layer", "create", "rectangle", "ellipse"],
        },
        {
            "className": "LayerCollection",
            "member": "addNull",
            "signature": "(duration)",
            "returnType": "AVLayer",
            "description": "Adds a null object layer, commonly used as a parent.",
            "tags": ["null", "parent", "layer", "create"],
        },
        {
            "className": "Layer",
            "member": "parent",
            "returnType": "Layer|null",
            "description": "Parent layer; assigning keeps the child's world transform.",
            "tags": ["parent", "parenting", "null"],
        },
        {
            "className": "AVLayer",
            "member": "opacity",
            "returnType": "Property",
            "description": "Transform opacity, 0..100. Shortcut for transform.opacity.",
            "tags": ["opacity", "fade", "transparency", "transform"],
        },
        {
            "className": "AVLayer",
            "member": "position",
            "returnType": "Property",
            "description": "Transform position as [x, y] or [x, y, z] for 3D layers.",
            "tags": ["position", "move", "slide", "transform"],
        },
        {
            "className": "AVLayer",
            "member": "scale",
            "returnType": "Property",
            "description": "Transform scale in percent, [x, y] or [x, y, z].",
            "tags": ["scale", "size", "bounce", "transform"],
        },
        {
            "className": "AVLayer",
            "member": "rotation",
            "returnType": "Property",
            "description": "Transform rotation in degrees (Z rotation for 3D layers).",
            "tags": ["rotation", "rotate", "spin", "transform"],
        },
        {
            "className": "Property",
            "member": "setValueAtTime",
            "signature": "(time, newValue)",
            "returnType": "void",
            "description": "Creates or updates a keyframe at time (seconds).",
            "tags": ["keyframe", "animate", "animation", "time"],
        },
        {
            "className": "Property",
            "member": "setInterpolationTypeAtKey",
            "signature": "(keyIndex, inType, outType)",
            "returnType": "void",
            "description": "Sets keyframe interpolation using KeyframeInterpolationType values.",
            "tags": ["ease", "easing", "keyframe", "interpolation"],
        },
        {
            "className": "Property",
            "member": "setTemporalEaseAtKey",
            "signature": "(keyIndex, inTemporalEase, outTemporalEase)",
            "returnType": "void",
            "description": "Applies KeyframeEase arrays; one KeyframeEase per property dimension.",
            "tags": ["ease", "easing", "keyframe", "bounce"],
        },
        {
            "className": "Property",
            "member": "expression",
            "returnType": "String",
            "description": "Expression source applied to the property; empty string removes it.",
            "tags": ["expression", "expressions", "wiggle"],
        },
        {
            "className": "PropertyGroup",
            "member": "addProperty",
            "signature": "(matchName)",
            "returnType": "PropertyBase",
            "description": "Adds an effect or shape content by match name, e.g. ADBE Gaussian Blur 2.",
            "tags": ["effect", "effects", "blur", "glow", "shadow"],
        },
        {
            "className": "Layer",
            "member": "inPoint",
            "returnType": "Number",
            "description": "Layer in point in seconds; set together with outPoint to trim.",
            "tags": ["trim", "inpoint", "timing", "stagger"],
        },
        {
            "className": "Layer",
            "member": "startTime",
            "returnType": "Number",
            "description": "Time the layer source starts, in seconds; shifting it offsets the layer.",
            "tags": ["offset", "stagger", "timing", "delay"],
        },
        {
            "className": "TextDocument",
            "member": "fontSize",
            "returnType": "Number",
            "description": "Font size in pixels; read the document, modify, then setValue on Source Text.",
            "tags": ["text", "font", "size"],
        },
    ],
    "recipes": [
        {
            "title": "Fade in the selected layer",
            "code": (
                "var comp = app.project.activeItem;\n"
                "if (!(comp instanceof CompItem)) { throw new Error('No active composition'); }\n"
                "var layer = comp.selectedLayers[0];\n"
                "var opacity = layer.property('ADBE Transform Group').property('ADBE Opacity');\n"
                "opacity.setValueAtTime(comp.time, 0);\n"
                "opacity.setValueAtTime(comp.time + 1, 100);"
            ),
            "tags": ["opacity", "fade", "animate"],
        },
        {
            "title": "Create a comp-sized solid",
            "code": (
                "var comp = app.project.activeItem;\n"
                "var solid = comp.layers.addSolid([1, 0, 0], 'BG', comp.width, comp.height,"
                " comp.pixelAspect, comp.duration);"
            ),
            "tags": ["solid", "background", "create"],
        },
        {
            "title": "Parent selected layers to a new null",
            "code": (
                "var comp = app.project.activeItem;\n"
                "var sel = comp.selectedLayers;\n"
                "var ctrl = comp.layers.addNull(comp.duration);\n"
                "ctrl.name = 'Control';\n"
                "for (var i = 0; i < sel.length; i++) { sel[i].parent = ctrl; }"
            ),
            "tags": ["null", "parent", "parenting"],
        },
        {
            "title": "Stagger selected layers by frames",
            "code": (
                "var comp = app.project.activeItem;\n"
                "var sel = comp.selectedLayers;\n"
                "var offset = 5 * comp.frameDuration;\n"
                "for (var i = 0; i < sel.length; i++) { sel[i].startTime += i * offset; }"
            ),
            "tags": ["stagger", "offset", "timing"],
        },
        {
            "title": "Apply Gaussian Blur effect",
            "code": (
                "var layer = app.project.activeItem.selectedLayers[0];\n"
                "var blur = layer.property('ADBE Effect Parade').addProperty('ADBE Gaussian Blur 2');\n"
                "blur.property('ADBE Gaussian Blur 2-0001').setValue(15);"
            ),
            "tags": ["blur", "effect", "effects"],
        },
    ],
    "gotchas": [
        {
            "title": "Collections are 1-based",
            "description": "comp.layer(i) and layers start at 1, but selectedLayers is a 0-based array.",
            "tags": ["layer", "index", "selected", "selection"],
        },
        {
            "title": "No ES5+ syntax",
            "description": "ExtendScript is ES3: no let/const, arrow functions, template literals or Array.forEach.",
            "tags": ["syntax", "let", "const", "arrow", "foreach"],
        },
        {
            "title": "Check activeItem type",
            "description": "activeItem may be null or a footage item; test instanceof CompItem first.",
            "tags": ["comp", "composition", "active"],
        },
        {
            "title": "Ease arrays must match dimensions",
            "description": "setTemporalEaseAtKey needs one KeyframeEase per dimension (3 for 3D position).",
            "tags": ["ease", "easing", "keyframe", "position", "scale"],
        },
        {
            "title": "Undo groups are managed by the host",
            "description": "Do not call app.beginUndoGroup or app.endUndoGroup inside generated scripts.",
            "tags": ["undo", "begin", "group"],
        },
        {
            "title": "Text changes require setValue",
            "description": "Edit a copy of the TextDocument and assign it back with sourceText.setValue(doc).",
            "tags": ["text", "font", "size"],
        },
    ],
}
