from django import forms

from discussions.models import Discussion, DiscussionCategory

BUILTIN_CATEGORIES = {value for value, _ in Discussion.CATEGORY_CHOICES}


class ThreadForm(forms.ModelForm):
    category = forms.CharField(max_length=50, required=False)

    class Meta:
        model = Discussion
        fields = ("title", "content", "category")

    def __init__(self, *args, school_id=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.school_id = school_id

    def clean_title(self):
        title = self.cleaned_data.get("title", "").strip()
        if not title:
            raise forms.ValidationError("A thread needs a title.")
        return title

    def clean_category(self):
        category = (self.cleaned_data.get("category") or "").strip()
        if not category:
            return Discussion.DEFAULT_CATEGORY
        if category in BUILTIN_CATEGORIES:
            return category
        if not DiscussionCategory.visible_to(self.school_id).filter(name=category).exists():
            raise forms.ValidationError(f"Unknown category: {category}")
        return category


class ReplyForm(forms.ModelForm):
    class Meta:
        model = Discussion
        fields = ("content",)

    def clean_content(self):
        content = self.cleaned_data["content"].strip()
        if not content:
            raise forms.ValidationError("A reply cannot be empty.")
        return content


class DiscussionCategoryForm(forms.ModelForm):
    class Meta:
        model = DiscussionCategory
        fields = ("name", "description", "color", "icon", "school")

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        if not name:
            raise forms.ValidationError("A category needs a name.")
        if name in BUILTIN_CATEGORIES:
            raise forms.ValidationError("This is already a built-in category.")
        return name

    def clean(self):
        cleaned = super().clean()
        name = cleaned.get("name")
        school = cleaned.get("school")
        if name and DiscussionCategory.objects.filter(name=name, school=school).exists():
            self.add_error("name", "A category with this name already exists.")
        return cleaned
